"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Billing
BILLING_CYCLE = 4
LESSON_PRICE = 500.0
CURRENCY = "PHP"
BILLING_DUE_DAYS = 7

# Scheduling
ROOM_COUNT = 4
TIME_SLOTS = tuple(f"{h:02d}:00" for h in range(8, 20))
LUNCH_BREAK_TIME = "12:00"
DEFAULT_LESSON_MINUTES = 60
MAX_REPEAT_WEEKS = 52
DEFAULT_GENERATED_WEEKS = 12
DAY_START_TIME = TIME_SLOTS[0]
SCHEDULE_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

# Attendance
ATTENDANCE_COOLDOWN_HOURS = 24
DEFAULT_LATE_GRACE_MINUTES = 10

# Lists
DEFAULT_HISTORY_LIMIT = 10
DEFAULT_MESSAGE_PAGE = 50
MAX_MESSAGE_LENGTH = 5000
MAX_FILE_SIZE = 10 * 1024 * 1024

# Calendar card layout (px)
BUTTON_COLUMN_WIDTH = 56
ADDITIONAL_MARGIN = 8
GAP_BETWEEN_LANES = 2
LESSON_MARGIN = 4
PIXELS_PER_MINUTE = 2
MIN_LESSON_HEIGHT = 30

INSTRUCTOR_COLORS = (
    "#60a5fa",
    "#f472b6",
    "#34d399",
    "#fbbf24",
    "#a78bfa",
    "#f87171",
    "#2dd4bf",
    "#fb923c",
)

# Enrollment
INSTRUMENT_OPTIONS = (
    "Piano",
    "Guitar",
    "Violin",
    "Voice",
    "Drums",
    "Ukulele",
    "Bass",
    "Cello",
    "Flute",
    "Saxophone",
)
MAX_BULK_UPLOAD = 50
