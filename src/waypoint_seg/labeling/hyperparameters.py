# hyperparameters.py

# ─── Voxel Admission ─────────────────────────────────────────────────────────────
MIN_POINT_COUNT         = 10     # supervoxels smaller than this are dropped

# ─── Dense CRF Energy ────────────────────────────────────────────────────────────
APPEARANCE_COLOR_SIGMA  = 13.0   # Lab units
APPEARANCE_RANGE_SIGMA  = 0.2    # meters
APPEARANCE_WEIGHT       = 5.0
SMOOTHNESS_RANGE_SIGMA  = 0.05   # meters
SMOOTHNESS_WEIGHT       = 3.0
CRF_ITERATIONS          = 5      # fixed count, no convergence check
CRF_NEIGHBORS           = 16     # k in the truncated Gaussian kernel

# ─── Voxelization ────────────────────────────────────────────────────────────────
CLOUD_RESOLUTION        = 0.01   # meters, requested from the observation source
VOXEL_RESOLUTION        = 0.02   # meters, leaf size of the voxelized cloud
SEED_RESOLUTION         = 0.15   # meters, supervoxel seed grid

# ─── Classes ─────────────────────────────────────────────────────────────────────
# (name, display RGB) - index in this list is the class id
CLASSES = [
    ("floor",    (128,  64, 128)),
    ("wall",     (190, 153, 153)),
    ("ceiling",  ( 70, 130, 180)),
    ("table",    (250, 170,  30)),
    ("chair",    (220,  20,  60)),
    ("cabinet",  (107, 142,  35)),
    ("object",   (  0,   0, 142)),
]

# ─── Classifier ──────────────────────────────────────────────────────────────────
CLASSIFIER_HIDDEN       = [64, 32]
CLASSIFIER_DROPOUT      = 0.5

# ─── ROS Interfaces ──────────────────────────────────────────────────────────────
FRAME_ID                     = "map"
OUTPUT_TOPIC                 = "/semantic_segmentation_clouds"
OBSERVATION_SERVICE          = "/semantic_map_publisher/ObservationService"
OBSERVATION_INSTANCE_SERVICE = "/semantic_map_publisher/ObservationInstanceService"
SENSOR_ORIGIN_SERVICE        = "/semantic_map_publisher/SensorOriginService"
SERVICE_TIMEOUT              = 5.0   # seconds to wait for a collaborator service
CLIENT_THREADS               = 2     # executor threads kept free for collaborator replies
