"""
Configuration constants for the image triage application.

This module centralizes settings like supported file types, default values,
reserved marks and other configuration parameters to make them easily
accessible and modifiable across the application.
"""

import re
from pathlib import Path

# A tuple of supported image file extensions (case-insensitive).
# Only these files take part in navigation; the decision is made on the name alone.
SUPPORTED_IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.gif', '.bmp', '.tiff', '.tif', '.webp')

# Compiled filename predicate built from the extensions above.
IMAGE_NAME_PATTERN = re.compile(
    r'^[^.].*\.(' + '|'.join(ext.lstrip('.') for ext in SUPPORTED_IMAGE_EXTENSIONS) + r')$',
    re.IGNORECASE,
)

# Default delay in seconds between images in automatic playback mode.
# None means manual navigation only.
DEFAULT_DELAY = None

# Default number of images to move on each advance.
DEFAULT_STEP = 1

# Number of images skipped by the "jump" keys.
JUMP_STEP = 10

# Generic "selected for sort" mark. Resolved through the name prefix when
# no explicit destination is configured for it.
SORT_MARK = '*'

# Mark used by the delete-flagging action, consumed by the bulk delete pass.
DELETE_MARK = 'D'

# Name of the file storing marks between runs.
# It is created in the root of the scanned image folder.
MARKS_FILENAME = '.imgtriage-marks'

# Default location of the persisted presets and sort destinations.
DEFAULT_CONFIG_PATH = Path('~/.config/imgtriage/config.json').expanduser()

# Name of the preset used when none is given on the command line.
DEFAULT_PRESET = 'default'

# Label prefixed to the external viewer's window title.
# The title contract is "<label> <filename>[ [Paused]]".
FEH_TITLE_LABEL = 'imgtriage'

# Upper bound in seconds for every call to an external helper program.
SUBPROCESS_TIMEOUT = 5.0

# Seconds between two reads of the external viewer's title.
FEH_POLL_INTERVAL = 0.5

# Default logging level for the application.
# Can be 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'.
DEFAULT_LOG_LEVEL = 'INFO'
