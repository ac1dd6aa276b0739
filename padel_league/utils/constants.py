"""
Constants used across the ELO calculation system.
"""

# ELO calculation constants
K = 20  # K-factor applied to every match
INITIAL_ELO = 1500
MARGIN_DIVISOR = 12  # Each point of margin adds 1/12 to the multiplier
MAX_MARGIN_MULTIPLIER = 1.5  # Cap on blowout amplification

# Power ranking weights
POWER_RANKING_ELO_WEIGHT = 0.3
POWER_RANKING_POINT_DIFF_WEIGHT = 4
POWER_RANKING_WIN_PCT_WEIGHT = 0.1

# Partnership chemistry
CHEMISTRY_BASE = 100
CHEMISTRY_EXPECTED_WIN_PCT = 50
CHEMISTRY_WIN_PCT_WEIGHT = 0.5
CHEMISTRY_POINT_DIFF_WEIGHT = 2
CHEMISTRY_FULL_SAMPLE_GAMES = 3  # Games needed before chemistry is undampened
CHEMISTRY_SMALL_SAMPLE_BASE = 0.5
CHEMISTRY_SMALL_SAMPLE_PER_GAME = 0.2

PARTNERSHIP_KEY_SEPARATOR = "-"
