"""
Giveaway System Configuration
All configurable parameters for giveaways
"""

import os

# Shortest giveaway accepted from commands and the admin API (milliseconds)
MIN_GIVEAWAY_DURATION_MS = int(os.getenv("GIVEAWAY_MIN_DURATION_MS", "60000"))

# Upper bound on winners per giveaway accepted from commands and the admin API
MAX_GIVEAWAY_WINNERS = int(os.getenv("GIVEAWAY_MAX_WINNERS", "100"))

# How often the scheduler sweeps for expired giveaways (seconds)
SWEEP_INTERVAL_SECONDS = int(os.getenv("GIVEAWAY_SWEEP_INTERVAL", "60"))

# Discord presentation
GIVEAWAY_EMBED_COLOR = 0xFF73FA
GIVEAWAY_ENDED_COLOR = 0x2F3136
JOIN_BUTTON_CUSTOM_ID = "giveaway_join"
