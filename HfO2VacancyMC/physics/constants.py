"""Units and physical constants for vacancy simulation.

Internal units follow the transport-engine convention: length in mm and
energy in MeV. Multiply a value by a unit to convert it into internal units,
divide by the unit to read it back (``30 * eV``, ``edep / eV``).
"""

# Length units
mm = 1.0
um = 1.0e-3 * mm
nm = 1.0e-6 * mm
cm = 10.0 * mm
cm3 = cm * cm * cm

# Energy units
MeV = 1.0
keV = 1.0e-3 * MeV
eV = 1.0e-6 * MeV

# Fundamental constants
AVOGADRO = 6.02214076e23  # Avogadro constant in 1/mol

# Oxide stoichiometry
OXYGEN_SITES_PER_FORMULA_UNIT = 2  # O sites per HfO2 formula unit

# HfO2 material defaults
HFO2_DENSITY_G_CM3 = 9.68  # Crystalline HfO2 density in g/cm³
HFO2_MOLAR_MASS_G_MOL = 210.49  # Hf (178.49) + 2 O (16.00) in g/mol

# Seed charge state
MAX_SEED_CAPTURED_ELECTRONS = 2  # Seed saturates at two captured electrons

# Default vacancy kinetics
DEFAULT_W_EV = 15.0  # Energy per captured electron in eV
DEFAULT_EA_BASE_EV = 2.0  # Growth barrier without a charged seed in eV
DEFAULT_EA_FAST_EV = 1.3  # Growth barrier near a charged seed in eV
DEFAULT_INITIAL_CONCENTRATION_CM3 = 1.0e18  # Initial vacancy density in cm⁻³
DEFAULT_RANDOM_SEED = 12345
