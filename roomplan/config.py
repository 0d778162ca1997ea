from datetime import time

# Working day used by the availability overview when no window is given.
DEFAULT_DAY_START = time(8, 0)
DEFAULT_DAY_END = time(18, 0)

# Only sessions of this kind are offered to the planner.
PLANNABLE_KIND = "course"

TIME_FORMATS = ("%H:%M", "%H:%M:%S")
DATE_FORMAT = "%Y-%m-%d"
