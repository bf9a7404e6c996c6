# WINDOWING CONFIGURATION FOR REAL-TIME PREDICTION

# Window size: number of samples per prediction window
# Must match the size used when the scaler/model were fitted
# (WISDM uses 200 samples, roughly 10 seconds at 20 Hz)
WINDOW_SIZE = 200

# Minimum time between two inferences (milliseconds).
# Samples keep sliding through the window in between, they just don't trigger a prediction.
RATE_LIMIT_MS = 800

# While the model is not loaded, a "not ready" notice is shown at most once per interval
NOT_READY_NOTICE_MS = 2000

# FEATURES

# Feature order is fixed: the stored scaler was fitted against exactly this layout
FEATURE_NAMES = [
    "mean_x", "mean_y", "mean_z",
    "std_x", "std_y", "std_z",
    "rms",
]
N_FEATURES = len(FEATURE_NAMES)

# Lower bound for scaler "scale" entries, avoids dividing by ~0
SCALE_EPSILON = 1e-8

# INTENSITY SCALE

# Levels 1..5, exactly one indicator is lit per prediction
INTENSITY_LEVELS = 5
DEFAULT_LEVEL = 3

# Label used when the arg-max index has no entry in the label list
UNKNOWN_LABEL = "unknown"

# ASSETS (paths or http(s) URLs)

DEFAULT_MODEL_PATH = "web_model/model.joblib"
DEFAULT_SCALER_PATH = "scaler.json"
DEFAULT_LABELS_PATH = "labels.json"

# Timeout for fetching assets over HTTP (seconds)
FETCH_TIMEOUT_S = 10.0

# PHONE / SENSOR SOURCE

# phyphox buffer names for the "Acceleration (with g)" experiment
SENSORS = ["accX", "accY", "accZ"]

# default: "http://192.168.0.36:8080"
PHYPHOX_URL = "http://192.168.0.36:8080"

# Poll ~10 times per second
POLL_INTERVAL_S = 0.1

# Wait this long before polling again after a failed request
ERROR_BACKOFF_S = 2.0

# Replay of recorded CSV files (KU-HAR raw layout: col0 = accel time, cols 1..3 = accel x/y/z)
REPLAY_HZ = 20.0
REPLAY_COLUMNS = (1, 2, 3)
