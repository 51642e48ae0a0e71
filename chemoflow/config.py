import logging

# Domain
SPACING_DIVISOR = 20            # default spacing = min(extent) / SPACING_DIVISOR
PERIODIC = True

# Field integrator
ODE_METHOD = 'RK45'
ODE_METHODS = ('RK23', 'RK45', 'DOP853', 'Radau', 'BDF', 'LSODA')

# Chemotaxis
COMPOUND_DIFFUSIVITY = 608.0    # μm²/s

# Encounters
MAX_REINSERT_ATTEMPTS = 10000

# Logging
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


def configure_logging(level=logging.INFO):
    """Attach a basic stream handler to the package logger (for driver scripts)."""
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger('chemoflow').setLevel(level)
