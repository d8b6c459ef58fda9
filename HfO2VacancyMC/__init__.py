"""
Radiation-Induced Oxygen Vacancy Simulation in HfO2 Films

Voxelized bookkeeping of energy deposited by an external particle-transport
engine, driving nucleation and growth of oxygen vacancies in a thin HfO2
dielectric.
"""

__version__ = "0.1.0"

from .core.vacancy_simulator import VacancySimulator
from .utils.config import SimulationConfig

__all__ = ['VacancySimulator', 'SimulationConfig']
