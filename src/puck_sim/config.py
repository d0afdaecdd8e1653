# discretization
GRID_ROWS = 32   # z (top -> bottom)
GRID_COLS = 20   # r (center -> wall)
MIN_GRID_ROWS = 3
MIN_GRID_COLS = 2

# packing
BASE_POROSITY = 0.42
LOOSE_POROSITY = 0.40          # before tamp, used for puck height
TAMP_POROSITY_PER_KG = 0.004
MOISTURE_SWELLING = 0.15
POROSITY_MIN = 0.20
POROSITY_MAX = 0.50

# permeability field
KOZENY_CARMAN_CONSTANT = 180.0
EDGE_START = 0.85
EDGE_BOOST = 0.25
BOTTOM_START = 0.7
BOTTOM_LOSS = 0.20
NOISE_GAIN = 0.8
MOISTURE_NOISE_GAIN = 0.3
PERMEABILITY_FLOOR = 0.1       # fraction of Kozeny-Carman base
MIN_PERMEABILITY = 1e-20       # m^2
RNG_SEED = 42

# pressure solve (SOR)
SOR_OMEGA = 1.4
SOR_MAX_ITERS = 200
SOR_TOL_PA = 1.0
HARMONIC_EPS = 1e-30
MIN_RADIUS_FRACTION = 0.01

# extraction / channeling heuristics (empirical, pending domain review)
REPRESENTATIVE_VELOCITY_FRACTION = 0.3
EXTRACTION_GAIN = 0.5
CHANNEL_THRESHOLD = 2.5
CHANNELING_CV_SEVERE = 0.5
BREW_RATIO = 2.0
FALLBACK_SHOT_TIME_S = 30.0
MIN_FLOW_ML_S = 1e-9

# advisory
RISK_MODERATE = 0.25
RISK_HIGH = 0.5
UNIFORMITY_GOOD = 0.7
SHOT_TIME_WINDOW_S = (24.0, 32.0)

# physical
WATER_DENSITY = 1000.0     # kg/m^3
PA_PER_BAR = 1e5

# dynamic viscosity of water (CRC): degC -> Pa*s
VISCOSITY_TABLE = (
    (20.0, 1.002e-3),
    (25.0, 0.890e-3),
    (30.0, 0.798e-3),
    (40.0, 0.653e-3),
    (50.0, 0.547e-3),
    (60.0, 0.467e-3),
    (70.0, 0.404e-3),
    (80.0, 0.354e-3),
    (90.0, 0.315e-3),
    (95.0, 0.298e-3),
    (100.0, 0.282e-3),
)

# usual input ranges from the brew sliders (informational only, inputs are never rejected)
PARAM_RANGES = {
    "grind_size_microns": (200.0, 800.0),
    "dose_grams": (5.0, 25.0),
    "tamp_pressure_kg": (5.0, 30.0),
    "brew_pressure_bar": (1.0, 12.0),
    "water_temp_c": (70.0, 100.0),
    "bean_density": (1.05, 1.25),
    "moisture_content": (0.02, 0.18),
    "distribution_quality": (0.3, 1.0),
}
