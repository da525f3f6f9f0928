"""Constants for the upstream tracker page.

The upstream tracker renders two tables with stable element IDs. Columns are
looked up by header text, so added or reordered columns are tolerated.
"""

CHECKS_TABLE = "checks"
HINTS_TABLE = "hints"

TABLE_SELECTORS = {
    CHECKS_TABLE: "table#checks-table",
    HINTS_TABLE: "table#hints-table",
}

HEADER_ROW_SELECTOR = "thead tr"
HEADER_CELL_SELECTOR = "th"
BODY_ROW_SELECTOR = "tbody tr"
BODY_CELL_SELECTOR = "td"

# Checks table columns
COLUMN_POSITION = "#"
COLUMN_NAME = "Name"
COLUMN_GAME = "Game"
COLUMN_STATUS = "Status"
COLUMN_CHECKS = "Checks"
COLUMN_LAST_ACTIVITY = "Last Activity"

# Hints table columns
COLUMN_FINDER = "Finder"
COLUMN_RECEIVER = "Receiver"
COLUMN_ITEM = "Item"
COLUMN_LOCATION = "Location"
COLUMN_ENTRANCE = "Entrance"
COLUMN_FOUND = "Found"

LAST_ACTIVITY_NONE = "None"

U32_MAX = 2**32 - 1
