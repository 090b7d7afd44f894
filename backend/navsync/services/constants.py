# backend/navsync/services/constants.py
"""
Centralized constants for the NAV sync services.

Values that operators tune per deployment live in config.Settings; the
constants here are defaults and fixed limits referenced from several
modules.

Usage:
    from navsync.services.constants import (
        SCRAPE_PACING_SECONDS,
        RATE_LIMIT_SYNC,
    )
"""


# =============================================================================
# BATCH PACING
# =============================================================================

# Minimum spacing before a fund page scrape (the pages throttle bursts)
SCRAPE_PACING_SECONDS: float = 1.0

# Minimum spacing before a quote API call
# Free tier allows 5 calls/minute; spacing keeps short batches inside it
QUOTE_API_PACING_SECONDS: float = 0.5


# =============================================================================
# EXTERNAL SOURCE TIMEOUTS
# =============================================================================

# Quote API requests
QUOTE_API_TIMEOUT_SECONDS: int = 10

# Fund pages are heavier; kept within 10-15 seconds
SCRAPE_TIMEOUT_SECONDS: int = 15


# =============================================================================
# SYNC RETRY POLICY
# =============================================================================

SYNC_MAX_ATTEMPTS: int = 3

# Delay after the first failed attempt; doubles per attempt
SYNC_INITIAL_DELAY_SECONDS: float = 5.0

# Upper bound for any single delay
SYNC_MAX_DELAY_SECONDS: float = 60.0


# =============================================================================
# MANUAL ENTRY
# =============================================================================

# Largest number of funds accepted by one on-demand batch fetch
MAX_FUNDS_PER_FETCH: int = 50


# =============================================================================
# RATE LIMITING
# =============================================================================
# Format: "count/period" (e.g., "100/minute")

# Read endpoints (status, resolve preview)
RATE_LIMIT_DEFAULT: str = "100/minute"

# Manual NAV entry
RATE_LIMIT_WRITE: str = "30/minute"

# Anything that calls the external NAV sources
RATE_LIMIT_SYNC: str = "5/minute"

# Health checks (monitoring probes)
RATE_LIMIT_HEALTH: str = "60/minute"
