"""
Default hyperparameters for the KNN recommenders.
Constructors take keyword arguments that fall back to these values.
"""

# --- Neighborhood ---
DEFAULT_K = 80  # contributing neighbors per prediction, None = unlimited
POSITIVE_ONLY = True  # walk PositivelyCorrelated instead of the full ranking
DEFAULT_DISCOUNT_BETA = None  # significance weighting, None = off

# --- Rating range ---
MIN_RATING = 0.5
MAX_RATING = 5.0
CLAMP_PREDICTIONS = True

# --- Baseline (user/item biases) ---
BASELINE_REG_U = 15.0
BASELINE_REG_I = 10.0
BASELINE_NUM_ITER = 10

# --- Persistence ---
READ_DIAGONAL = 1.0  # value written on the diagonal when loading, None = leave at 0

# --- Misc ---
SHOW_PROGRESS = True
