"""Static keyword rules for merchant categorization.

Both tables are ordered. Categories are scanned top to bottom and the
first keyword hit wins, so a description such as "UBER EATS" lands in
Food & Drink only if a Food & Drink keyword matches before the
Transportation rules are reached. Reordering entries changes results.
"""
from typing import List, Tuple

CategoryRule = Tuple[str, List[str]]

CATEGORY_RULES: List[CategoryRule] = [
    ("Income", [
        "ZELLE PAYMENT FROM", "DIRECT DEP", "SALARY", "PAYROLL"
    ]),
    ("Food & Drink", [
        "MCDONALD'S", "GRUBHUB", "SQ *", "TST*", "PIZZERIA", "FRESH & CO",
        "FRESH&CO", "PARIS BAGUETTE", "KFC", "DINER", "BRAVO SUPERMARKET",
        "KEY FOOD", "RESTAURANT", "CAFE", "PIZZA", "DELI", "BAKERY", "FOOD"
    ]),
    ("Transportation", [
        "UBER", "MTA*NYCT", "SUBWAY", "TAXI", "LYFT", "TRANSIT", "BUS", "TRAIN"
    ]),
    ("Shopping", [
        "CVS/PHARMACY", "CVS/PHARM", "DOLLAR GENERAL", "BJS WHOLESALE",
        "TARGET", "WALMART", "AMAZON", "COSTCO", "STORE", "SHOPPING", "RETAIL"
    ]),
    ("Entertainment", [
        "AMC", "MOVIE", "THEATER", "CINEMA", "NETFLIX", "SPOTIFY", "GAMING",
        "SUPERCELLSTORE", "TIKTOK SHOP"
    ]),
    ("Bills & Utilities", [
        "HP *INSTANT INK", "ELECTRIC", "GAS", "WATER", "PHONE", "INTERNET",
        "CABLE", "INSURANCE", "UTILITIES", "VERIZON", "AT&T", "TMOBILE"
    ]),
    ("Financial & Transfers", [
        "COINBASE", "COIN BASE", "ZELLE PAYMENT TO", "ACORNS", "PAYPAL",
        "APPLECARD GSBANK", "BARCLAYCARD US", "1ST BANKCARD CTR",
        "PAYMENT TO CHASE CARD", "APPLE CASH", "VENMO", "CASHAPP", "ROBINHOOD",
        "FUNDRISE", "GEMINI", "MOONPAY", "XVERSE", "CITIZENS ACCESS",
        "M1 PAYMENTS", "CREDIT CARD", "BANK TRANSFER", "ONLINE PMT", "CAPITAL ONE"
    ]),
    ("Health & Medical", [
        "PHARMACY", "DOCTOR", "HOSPITAL", "MEDICAL", "HEALTH", "DENTAL",
        "WALGREENS", "URGENT CARE"
    ]),
    ("Personal Care", [
        "GATES MEGAWASH", "SALON", "BARBER", "SPA", "GYM", "FITNESS"
    ]),
]

SUBCATEGORY_RULES = {
    "Income": [
        ("Salary", ["SALARY", "PAYROLL", "DIRECT DEP", "WAGES", "INCOME"]),
        ("Freelance", ["FREELANCE", "CONTRACTOR", "CONSULTATION", "GIG"]),
        ("Investment Income", ["DIVIDEND", "INTEREST", "CAPITAL GAINS"]),
        ("Other Income", ["BONUS", "COMMISSION", "TIPS", "GIFT", "REFUND"]),
    ],
    "Food & Drink": [
        ("Fast Food", ["MCDONALD", "KFC", "BURGER KING", "TACO BELL", "SUBWAY", "WENDYS",
                       "CHICK-FIL-A", "POPEYES", "CHIPOTLE", "FIVE GUYS", "IN-N-OUT"]),
        ("Coffee & Tea", ["STARBUCKS", "DUNKIN", "COFFEE", "CAFE", "TEA", "ESPRESSO", "LATTE"]),
        ("Restaurants & Dining", ["RESTAURANT", "BISTRO", "GRILL", "DINER", "PIZZERIA",
                                  "STEAKHOUSE", "SUSHI", "THAI", "CHINESE", "ITALIAN", "MEXICAN"]),
        ("Groceries & Supermarkets", ["SUPERMARKET", "GROCERY", "WALMART", "TARGET", "COSTCO",
                                      "WHOLE FOODS", "TRADER JOES", "SAFEWAY", "KROGER",
                                      "PUBLIX", "KEY FOOD"]),
        ("Delivery & Takeout", ["GRUBHUB", "DOORDASH", "UBER EATS", "POSTMATES", "SEAMLESS",
                                "DELIVERY", "TAKEOUT"]),
        ("Alcohol & Bars", ["BAR", "PUB", "BREWERY", "WINE", "LIQUOR", "BEER", "COCKTAIL"]),
        ("Bakeries & Desserts", ["BAKERY", "PASTRY", "DONUT", "ICE CREAM", "DESSERT", "CAKE",
                                 "COOKIE", "PARIS BAGUETTE"]),
    ],
    "Transportation": [
        ("Rideshare", ["UBER", "LYFT", "RIDESHARE", "TAXI"]),
        ("Public Transit", ["MTA", "SUBWAY", "BUS", "TRAIN", "TRANSIT", "METRO"]),
        ("Gas & Fuel", ["GAS", "FUEL", "SHELL", "EXXON", "BP", "CHEVRON", "MOBIL", "SUNOCO"]),
        ("Car Maintenance", ["AUTO", "MECHANIC", "REPAIR", "TIRE", "OIL CHANGE", "CARWASH"]),
        ("Parking", ["PARKING", "GARAGE", "METER", "VALET"]),
        ("Tolls", ["TOLL", "BRIDGE", "TUNNEL", "TURNPIKE"]),
    ],
    "Shopping": [
        ("Clothing & Accessories", ["CLOTHING", "APPAREL", "FASHION", "SHOES", "JEWELRY"]),
        ("Electronics & Tech", ["ELECTRONICS", "COMPUTER", "APPLE", "SAMSUNG", "BEST BUY"]),
        ("Home & Garden", ["HOME", "GARDEN", "FURNITURE", "HARDWARE", "HOME DEPOT", "IKEA"]),
        ("Online Shopping", ["AMAZON", "EBAY", "ETSY", "ONLINE", "TIKTOK SHOP"]),
        ("General Retail", ["RETAIL", "STORE", "SHOPPING", "MALL", "OUTLET", "TARGET",
                            "WALMART", "COSTCO", "DOLLAR GENERAL", "BJS WHOLESALE"]),
    ],
    "Entertainment": [
        ("Streaming Services", ["NETFLIX", "HULU", "DISNEY+", "HBO", "AMAZON PRIME",
                                "SPOTIFY", "YOUTUBE", "TWITCH"]),
        ("Gaming", ["GAMING", "XBOX", "PLAYSTATION", "NINTENDO", "STEAM", "SUPERCELLSTORE"]),
        ("Movies & Theater", ["MOVIE", "THEATER", "CINEMA", "AMC", "REGAL", "CINEMARK"]),
        ("Concerts & Events", ["CONCERT", "EVENT", "TICKET", "FESTIVAL", "VENUE"]),
        ("Hobbies", ["HOBBY", "CRAFT", "MUSIC", "BOOK", "MAGAZINE"]),
    ],
    "Bills & Utilities": [
        ("Phone & Internet", ["PHONE", "INTERNET", "CELL", "MOBILE", "VERIZON", "AT&T",
                              "T-MOBILE", "TMOBILE", "COMCAST", "SPECTRUM"]),
        ("Electricity & Gas", ["ELECTRIC", "GAS", "UTILITY", "UTILITIES", "POWER", "ENERGY"]),
        ("Water & Sewer", ["WATER", "SEWER", "MUNICIPAL"]),
        ("Insurance", ["INSURANCE"]),
        ("Subscriptions", ["SUBSCRIPTION", "MEMBERSHIP", "HP *INSTANT INK"]),
        ("Cable & TV", ["CABLE", "SATELLITE", "DIRECTV"]),
    ],
    "Financial & Transfers": [
        ("Cryptocurrency", ["CRYPTO", "BITCOIN", "COINBASE", "COIN BASE", "BINANCE", "KRAKEN",
                            "GEMINI", "MOONPAY", "XVERSE"]),
        ("Investment", ["INVESTMENT", "ROBINHOOD", "FIDELITY", "SCHWAB", "VANGUARD", "ACORNS",
                        "M1 PAYMENTS", "FUNDRISE"]),
        ("Digital Payments", ["PAYPAL", "VENMO", "CASHAPP", "ZELLE", "APPLE CASH"]),
        ("Banking & Credit", ["BANK", "CREDIT CARD", "LOAN", "PAYMENT", "APPLECARD GSBANK",
                              "BARCLAYCARD", "CAPITAL ONE", "CITIZENS ACCESS", "ONLINE PMT"]),
        ("Transfers", ["TRANSFER", "WIRE", "ACH"]),
        ("Fees", ["FEE", "OVERDRAFT", "ATM", "SERVICE CHARGE"]),
    ],
    "Health & Medical": [
        ("Pharmacy", ["PHARMACY", "CVS", "WALGREENS", "RITE AID", "PRESCRIPTION"]),
        ("Doctor Visits", ["DOCTOR", "PHYSICIAN", "CLINIC", "MEDICAL"]),
        ("Hospital", ["HOSPITAL", "EMERGENCY", "URGENT CARE"]),
        ("Dental", ["DENTAL", "DENTIST", "ORTHODONTIST"]),
        ("Vision", ["VISION", "OPTOMETRIST", "GLASSES"]),
    ],
    "Personal Care": [
        ("Hair & Beauty", ["HAIR", "SALON", "BARBER", "BEAUTY", "NAIL"]),
        ("Fitness & Gym", ["GYM", "FITNESS", "YOGA", "PILATES"]),
        ("Spa & Wellness", ["SPA", "MASSAGE", "WELLNESS"]),
        ("Laundry & Cleaning", ["LAUNDRY", "DRY CLEAN", "CLEANING", "GATES MEGAWASH"]),
    ],
}

# Whole words that mark a description word as a business rather than a person
BUSINESS_INDICATORS = {
    "LLC", "INC", "CORP", "RESTAURANT", "STORE", "MARKET", "BANK", "CREDIT",
    "CARD", "PAYMENT", "TRANSFER", "PHARMACY", "HOSPITAL", "CLINIC", "UBER",
    "LYFT", "AMAZON", "TARGET", "PAY"
}

# Endings of compound merchant words such as SUPERSTORE or GOOGLEPAY
MERCHANT_SUFFIXES = ["STORE", "MARKET", "MART", "PHARMACY", "RESTAURANT", "PAY"]

# In "ZELLE PAYMENT TO <name>" everything after TO/FROM is the counterparty
P2P_SERVICES = {"ZELLE", "VENMO", "CASHAPP", "PAYPAL"}
P2P_COUNTERPARTY_MARKERS = {"TO", "FROM"}

BUSINESS_PHRASES = [
    "DIRECT DEP", "CREDIT CARD", "ONLINE PMT", "INST XFER", "ZELLE PAYMENT",
    "PAYPAL", "VENMO", "CASHAPP"
]


def brand_tokens() -> set:
    """Single-word keywords from the rule tables, usable as learned patterns."""
    tokens = set()
    for _, keywords in CATEGORY_RULES:
        tokens.update(k for k in keywords if " " not in k and k.isalnum() and len(k) > 3)
    for rules in SUBCATEGORY_RULES.values():
        for _, keywords in rules:
            tokens.update(k for k in keywords if " " not in k and k.isalnum() and len(k) > 3)
    return tokens
