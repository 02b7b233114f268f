# Waypoint semantic labeling: supervoxel classification + dense CRF smoothing + map fusion
