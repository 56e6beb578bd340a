"""Central configuration for card detection and extraction.

All tunable parameters are defined here with descriptive names.
These values can be adjusted to fine-tune detection performance.
"""

from pathlib import Path

# =============================================================================
# DETECTOR STRATEGY
# =============================================================================

# Region detector used by default: "geometric" (OpenCV quadrilaterals)
# or "learned" (YOLO model, falls back to geometric when not loaded)
DETECTOR_STRATEGY = "geometric"

# Learned detector model lookup: MODEL_DIR / MODEL_NAME + one of MODEL_EXTENSIONS
MODEL_DIR = Path(__file__).parent / "models"
MODEL_NAME = "card_detector"
MODEL_EXTENSIONS = (".pt", ".onnx")

# Minimum confidence for learned detections (strictly greater than)
LEARNED_CONFIDENCE_THRESHOLD = 0.5

# =============================================================================
# GEOMETRIC RECTANGLE DETECTION
# =============================================================================

# Engine-level bounds (loose). Aspect ratio is short side / long side.
RECT_MIN_ASPECT_RATIO = 0.4
RECT_MAX_ASPECT_RATIO = 0.85

# Shorter side of the quadrilateral relative to the shorter image side
RECT_MIN_SIZE = 0.05

RECT_MIN_CONFIDENCE = 0.5
RECT_MAX_OBSERVATIONS = 5

# Allowed deviation of each corner angle from 90 degrees
RECT_QUADRATURE_TOLERANCE = 30.0

# Edge detection parameters
RECT_BLUR_KERNEL = (5, 5)
RECT_CANNY_LOW = 30
RECT_CANNY_HIGH = 100
RECT_DILATE_ITERATIONS = 2
RECT_APPROX_EPSILON = 0.02

# Longest side the image is downscaled to before edge detection
RECT_WORKING_SIZE = 800

# Overlapping candidates (pixel IoU at or above this) are merged, most confident wins
REGION_DEDUP_IOU = 0.7

# Application-level card shape policy (strict), width / height of the box
CARD_MIN_ASPECT_RATIO = 0.45
CARD_MAX_ASPECT_RATIO = 0.85
CARD_MIN_CONFIDENCE = 0.5

# =============================================================================
# SCAN FRAME FILTERING
# =============================================================================

# Margin (viewport points) added around the scan frame for the center test
SCAN_FRAME_MARGIN = 20.0

# Overlap ratios (of the candidate's area, of the scan frame's area)
SCAN_FRAME_CANDIDATE_OVERLAP = 0.1
SCAN_FRAME_OVERLAP = 0.1

# Viewport used when a region carries no viewport size
DEFAULT_VIEWPORT_SIZE = (375.0, 812.0)

# =============================================================================
# CARD CLASSIFIER
# =============================================================================

# Minimum crop width and height in pixels
CLASSIFIER_MIN_SIZE = 50

# Fallback oracle when the heuristic rejects: "accept_all" or "reject_all"
CLASSIFIER_ORACLE = "accept_all"

# =============================================================================
# TEXT RECOGNITION
# =============================================================================

OCR_LANGUAGES = ("en",)
OCR_GPU = False

# "beamsearch" favours accuracy over speed, "greedy" the opposite
OCR_DECODER = "beamsearch"

# =============================================================================
# FACE DETECTION
# =============================================================================

# Face backend selection (swappable via config)
FACE_BACKEND = "opencv_haar"

# OpenCV Haar cascade detection parameters
FACE_DETECTION_SCALE_FACTOR = 1.1
FACE_DETECTION_MIN_NEIGHBORS = 5
FACE_DETECTION_MIN_SIZE = (24, 24)

FACE_DNN_PROTO_PATH = "faces/models/opencv_dnn_ssd/deploy.prototxt"
FACE_DNN_MODEL_PATH = "faces/models/opencv_dnn_ssd/res10_300x300_ssd_iter_140000.caffemodel"
FACE_DNN_INPUT_SIZE = (300, 300)
FACE_DNN_MEAN = (104.0, 177.0, 123.0)
FACE_DNN_SCALE = 1.0
FACE_DNN_SWAP_RB = False
FACE_DNN_CONFIDENCE_MIN = 0.5

# =============================================================================
# ORCHESTRATION
# =============================================================================

# Worker threads for per-candidate fan-out
MAX_WORKERS = 4

# Deadline in seconds for a single detect() invocation (None disables)
SCAN_TIMEOUT_SECONDS = 30.0

# Camera frames are scanned at most once per interval (seconds)
CAMERA_SCAN_INTERVAL = 1.0

# Library scans are processed in batches; cancellation is checked per image
LIBRARY_BATCH_SIZE = 10

# =============================================================================
# CARD STORE
# =============================================================================

DB_PATH = Path(__file__).parent / "cards.db"

UNKNOWN_PLAYER = "Unknown Player"
UNKNOWN_TEAM = "Unknown Team"
UNKNOWN_YEAR = 0
