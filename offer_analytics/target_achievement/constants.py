# offer_analytics/target_achievement/constants.py
"""
Constants for Target Achievement Module

Closed enumerations shared with every caller:
- Product types (9)
- Offer stages (8, exactly one terminal-won and one terminal-lost)
- Period and scope types

Adding a member here changes every normalized view; keep caller-side
lists in sync.
"""

from enum import Enum


# =====================================================================
# ENUMERATIONS
# =====================================================================

class ProductType(str, Enum):
    """Offer product types, in canonical display order."""
    RELOCATION = 'RELOCATION'
    CONTRACT = 'CONTRACT'
    SPP = 'SPP'
    UPGRADE_KIT = 'UPGRADE_KIT'
    SOFTWARE = 'SOFTWARE'
    BD_CHARGES = 'BD_CHARGES'
    BD_SPARE = 'BD_SPARE'
    MIDLIFE_UPGRADE = 'MIDLIFE_UPGRADE'
    RETROFIT_KIT = 'RETROFIT_KIT'


class OfferStage(str, Enum):
    """Offer pipeline stages, in pipeline order."""
    INITIAL = 'INITIAL'
    PROPOSAL_SENT = 'PROPOSAL_SENT'
    NEGOTIATION = 'NEGOTIATION'
    FINAL_APPROVAL = 'FINAL_APPROVAL'
    PO_RECEIVED = 'PO_RECEIVED'
    ORDER_BOOKED = 'ORDER_BOOKED'
    WON = 'WON'
    LOST = 'LOST'


class PeriodType(str, Enum):
    MONTHLY = 'MONTHLY'
    YEARLY = 'YEARLY'


class ScopeType(str, Enum):
    ZONE = 'ZONE'
    USER = 'USER'


# Plain-string views used for pandas comparisons
ALL_PRODUCT_TYPES = [pt.value for pt in ProductType]
ALL_STAGES = [s.value for s in OfferStage]

WON_STAGE = OfferStage.WON.value
LOST_STAGE = OfferStage.LOST.value
TERMINAL_STAGES = [WON_STAGE, LOST_STAGE]
OPEN_STAGES = [s for s in ALL_STAGES if s not in TERMINAL_STAGES]

# =====================================================================
# PERIOD DEFINITIONS
# =====================================================================

MIN_PERIOD_YEAR = 1900
MAX_PERIOD_YEAR = 2100

MONTH_ORDER = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"
]

QUARTER_MONTHS = {
    1: [1, 2, 3],
    2: [4, 5, 6],
    3: [7, 8, 9],
    4: [10, 11, 12]
}

# =====================================================================
# BUSINESS LOGIC SETTINGS
# =====================================================================

# Open offers must be strictly above this win probability to count as expected
EXPECTED_PROBABILITY_THRESHOLD = 50

# Pareto "core" share of revenue
PARETO_CUTOFF = 0.8

DEFAULT_TOP_N = 5

# Achievement histogram bands: (label, lower inclusive, upper exclusive)
ACHIEVEMENT_BANDS = [
    ('0-50', 0, 50),
    ('50-80', 50, 80),
    ('80-100', 80, 100),
    ('100-120', 100, 120),
    ('120+', 120, float('inf')),
]

# =====================================================================
# COLUMN SETS
# =====================================================================

OFFER_COLUMNS = [
    'id', 'stage', 'po_value', 'offer_value', 'zone_id', 'owner_id',
    'product_type', 'probability_percentage', 'created_at',
]

TARGET_COLUMNS = [
    'id', 'scope_type', 'scope_id', 'scope_name', 'product_type',
    'period', 'period_type', 'target_value', 'target_offer_count',
]

AGGREGATE_VALUE_COLUMNS = [
    'total_value', 'offer_count', 'won_value', 'won_count',
    'expected_value', 'open_value',
]

# Columns identifying a single target; duplicates on these are flagged
TARGET_KEY_COLUMNS = ['scope_type', 'scope_id', 'product_type', 'period', 'period_type']

# Aggregator group keys
GROUP_KEYS = ['zone_id', 'owner_id', 'product_type', 'month', 'stage']

SCOPE_COLUMN = {
    ScopeType.ZONE.value: 'zone_id',
    ScopeType.USER.value: 'owner_id',
}
