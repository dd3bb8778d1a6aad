"""Shared spatial constants for visibility and narration.

Distances are in grid units (one cell = one unit). Angles are in degrees,
screen orientation (0 = +x, 90 = +y which is downward on the canvas).
"""

# Side length of the square blocking grid.
BASE_GRID = 24

# Reach of the field-of-view triangle when deciding what the shot shows.
# Half the grid: far enough to cover a room, short enough that the far
# wall of a large set does not count as "in frame".
NARRATION_CONE_LENGTH = 12.0

# Shorter reach for the on-canvas cone preview.
PREVIEW_CONE_LENGTH = 8.0

# Normalised screen offset beyond which a subject leaves the center third.
# perpendicular / forward = 0.25 is roughly a third of a 50mm full-frame
# frame width (half-width there is 0.36).
SCREEN_THIRD_THRESHOLD = 0.25

# Depth buckets as a fraction of the reference depth.
FOREGROUND_RATIO = 0.35
MIDGROUND_RATIO = 0.65

# A character "faces toward" another when its facing is within this many
# degrees of the bearing to them.
FACING_TOLERANCE_DEG = 45.0

# Light bearing relative to the view direction, folded to [0, 180].
RIM_LIGHT_MIN_DEG = 135.0  # behind the subjects
FRONT_LIGHT_MAX_DEG = 30.0  # alongside the viewpoint

# Setup color that means "no tint".
DEFAULT_LIGHT_COLOR = "White"

# Lens defaults when the shot carries none.
DEFAULT_FOCAL_LENGTH = 35.0
