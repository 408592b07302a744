"""Internal constants shared across the library."""

SUBMIT_URL = "https://location.services.mozilla.com/v1/submit"
USER_AGENT = "pystumbler/1.0"

NICKNAME_HEADER = "X-Nickname"
USER_AGENT_HEADER = "User-Agent"

REQUEST_BATCH_SIZE = 50
MAX_RETRY_COUNT = 3
REQUEST_TIMEOUT_S = 60.0

# Response code that triggers the one-shot uncompressed resend.
MALFORMED_STATUS = 400

# ------------------------------------------------------------------
# Cumulative statistics keys
# ------------------------------------------------------------------

STATS_KEY_LAST_UPLOAD_TIME = "last_upload_time"
STATS_KEY_OBSERVATIONS_SENT = "observations_sent"
STATS_KEY_CELLS_SENT = "cells_sent"
STATS_KEY_WIFIS_SENT = "wifis_sent"
