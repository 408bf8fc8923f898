"""
Centralized constants and configuration data.

This module contains all hardcoded databases, thresholds, and mappings
used throughout the application. Centralizing these values makes them
easy to modify and maintain.

Categories:
- Condition-to-ingredient knowledge base
- Budget tiers
- Match scoring weights
- Keyword tables for reading free-text AI output
- Condition-to-store-category mapping
"""

from typing import Dict, List, Tuple

# ==============================================================================
# CONDITION INGREDIENT DATABASE
# ==============================================================================

INGREDIENT_DATABASE: Dict[str, Dict[str, List[str]]] = {
    "acne": {
        "beneficial": [
            "salicylic acid", "capryloyl salicylic acid", "benzoyl peroxide",
            "niacinamide", "tea tree", "zinc", "sulfur", "glycolic acid",
            "sodium hyaluronate", "adenosine", "tocopherol", "ascorbyl glucoside",
            "sodium lactate", "hydroxyacetophenone", "caprylic/capric triglyceride"
        ],
        "avoid": [
            "coconut oil", "cocoa butter", "palm oil", "isopropyl myristate",
            "stearyl alcohol", "ceteareth-6", "parfum/fragrance", "alcohol denat.",
            "methylparaben", "synthetic wax", "dimethicone"
        ]
    },
    "oily": {
        "beneficial": [
            "niacinamide", "salicylic acid", "capryloyl salicylic acid",
            "clay", "charcoal", "witch hazel", "zinc", "silica",
            "glycolic acid", "alcohol denat.", "hydroxyacetophenone"
        ],
        "avoid": [
            "mineral oil", "petrolatum", "silicones", "heavy oils",
            "dimethicone", "isohexadecane", "caprylic/capric triglyceride",
            "stearyl alcohol", "ceteareth-6", "synthetic wax"
        ]
    },
    "dry": {
        "beneficial": [
            "hyaluronic acid", "sodium hyaluronate", "glycerin", "ceramides",
            "squalane", "shea butter", "jojoba oil", "caprylic/capric triglyceride",
            "dimethicone", "tocopherol", "tocopheryl acetate", "butylene glycol",
            "pentylene glycol", "propanediol", "dipropylene glycol", "glyceryl stearate",
            "stearyl alcohol", "ceteareth-6"
        ],
        "avoid": [
            "alcohol denat.", "fragrance", "parfum/fragrance", "sulfates",
            "high ph cleansers", "sodium lauryl sulfate", "methylparaben",
            "phenoxyethanol"
        ]
    },
    "sensitive": {
        "beneficial": [
            "centella asiatica", "aloe vera", "oat", "chamomile", "allantoin",
            "bisabolol", "niacinamide", "sodium hyaluronate", "glycerin",
            "dipotassium glycyrrhizate", "tocopherol", "adenosine",
            "caprylic/capric triglyceride", "propanediol"
        ],
        "avoid": [
            "fragrance", "parfum/fragrance", "essential oils", "alcohol",
            "alcohol denat.", "retinol", "retinyl palmitate", "high concentrations of acids",
            "linalool", "citronellol", "limonene", "benzyl alcohol", "benzyl salicylate",
            "geraniol", "hexyl cinnamal", "methylparaben", "phenoxyethanol"
        ]
    },
    "redness": {
        "beneficial": [
            "centella asiatica", "niacinamide", "azelaic acid", "green tea",
            "licorice root", "dipotassium glycyrrhizate", "sodium hyaluronate",
            "tocopherol", "adenosine", "glycerin", "paeonia suffruticosa root extract",
            "caprylic/capric triglyceride"
        ],
        "avoid": [
            "fragrance", "parfum/fragrance", "menthol", "eucalyptus",
            "high concentrations of vitamin c", "alcohol denat.",
            "linalool", "citronellol", "limonene", "benzyl alcohol"
        ]
    },
    "dark-spots": {
        "beneficial": [
            "vitamin c", "ascorbyl glucoside", "niacinamide", "kojic acid",
            "alpha arbutin", "licorice root", "dipotassium glycyrrhizate",
            "azelaic acid", "glycolic acid", "retinol", "retinyl palmitate",
            "tocopherol", "adenosine", "paeonia suffruticosa root extract",
            "pancratium maritimum extract"
        ],
        "avoid": [
            "harsh scrubs", "fragrance", "parfum/fragrance", "alcohol denat.",
            "methylparaben"
        ]
    },
    "wrinkles": {
        "beneficial": [
            "retinol", "retinyl palmitate", "peptides", "palmitoyl tripeptide-1",
            "palmitoyl tetrapeptide-7", "vitamin c", "ascorbyl glucoside",
            "hyaluronic acid", "sodium hyaluronate", "niacinamide",
            "coenzyme q10", "glycerin", "adenosine", "tocopherol",
            "tocopheryl acetate", "glycolic acid", "dimethicone",
            "caprylic/capric triglyceride"
        ],
        "avoid": [
            "fragrance", "parfum/fragrance", "alcohol denat.", "harsh scrubs",
            "methylparaben"
        ]
    },
    "large-pores": {
        "beneficial": [
            "niacinamide", "salicylic acid", "capryloyl salicylic acid",
            "retinol", "retinyl palmitate", "clay masks", "azelaic acid",
            "glycolic acid", "silica", "adenosine"
        ],
        "avoid": [
            "heavy oils", "silicones", "dimethicone", "isohexadecane",
            "stearyl alcohol", "synthetic wax"
        ]
    },
    "uneven-texture": {
        "beneficial": [
            "glycolic acid", "lactic acid", "retinol", "retinyl palmitate",
            "enzyme exfoliants", "niacinamide", "salicylic acid",
            "capryloyl salicylic acid", "ascorbyl glucoside", "adenosine",
            "sodium hyaluronate"
        ],
        "avoid": [
            "harsh scrubs", "fragrance", "parfum/fragrance", "alcohol denat.",
            "methylparaben"
        ]
    }
}


# Supported condition identifiers (closed enumeration)
VALID_CONDITIONS: List[str] = [
    "acne", "dark-spots", "wrinkles", "redness", "large-pores",
    "uneven-texture", "dry", "oily", "sensitive"
]


# ==============================================================================
# BUDGET TIERS
# ==============================================================================

# Inclusive price range per tier, in store currency units
BUDGET_RANGES: Dict[str, Tuple[float, float]] = {
    "low": (0.0, 1000.0),
    "mid": (0.0, 2500.0),
    "high": (2500.0, 5000.0),
    "luxury": (5000.0, 999999.0)
}

# Catalog cache partition used when no budget was requested
ANY_BUDGET_TIER = "any"


# ==============================================================================
# MATCH SCORING
# ==============================================================================

SCORE_WEIGHTS: Dict[str, float] = {
    "beneficial": 12,       # per beneficial ingredient present
    "avoid": -25,           # per avoid ingredient present
    "condition_match": 15,  # condition named in the product description
    "name_match": 8,        # condition named in the product name
    "concentration": 5      # beneficial ingredient among the first listed
}

CONCENTRATION_WINDOW = 5           # leading ingredients treated as high concentration
QUALITY_INGREDIENT_THRESHOLD = 10  # more distinct ingredients than this earn the multiplier
QUALITY_MULTIPLIER = 1.1
MAX_MATCH_SCORE = 100


# ==============================================================================
# AI OUTPUT PARSING
# ==============================================================================

# Keywords used to recover conditions from free-text vision model output
CONDITION_KEYWORDS: Dict[str, List[str]] = {
    "acne": ["acne", "pimple", "breakout", "blemish", "comedone"],
    "dark-spots": ["dark spot", "hyperpigmentation", "pigmentation", "melasma", "age spot", "sun spot"],
    "wrinkles": ["wrinkle", "fine line", "aging", "age line", "crow's feet"],
    "redness": ["redness", "red", "irritation", "inflammation", "rosacea", "erythema"],
    "large-pores": ["large pore", "pore", "enlarged pore", "open pore"],
    "uneven-texture": ["uneven", "texture", "rough", "bumpy", "roughness"],
    "dry": ["dry", "dehydration", "flaky", "dryness", "dehydrated"],
    "oily": ["oily", "sebum", "greasy", "oiliness", "excess oil"],
    "sensitive": ["sensitive", "irritation", "reactive", "sensitivity"]
}

# Checked in order; first hit wins
SKIN_TYPES: List[str] = ["oily", "dry", "sensitive", "combination", "normal"]
DEFAULT_SKIN_TYPE = "combination"


# ==============================================================================
# STORE CATEGORIES
# ==============================================================================

CONDITION_CATEGORIES: Dict[str, List[str]] = {
    "acne": ["acne treatment", "spot treatment", "cleanser", "toner"],
    "oily": ["oil control", "mattifying", "cleanser", "toner"],
    "dry": ["moisturizer", "hydrating", "face oil", "serum"],
    "sensitive": ["sensitive skin", "gentle", "soothing"],
    "redness": ["redness relief", "calming", "anti-redness"],
    "dark-spots": ["brightening", "dark spot corrector", "vitamin c"],
    "wrinkles": ["anti-aging", "retinol", "wrinkle treatment"],
    "large-pores": ["pore minimizer", "toner", "mask"],
    "uneven-texture": ["exfoliator", "peeling", "resurfacing"]
}
