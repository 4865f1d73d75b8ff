import re
from datetime import UTC, datetime
from pathlib import Path

# HTTP identity and base endpoints
HEADERS = {"User-Agent": "wow-classic-items/1.0 (dataset builder; +https://github.com/nexus-devs/wow-classic-items)"}
WOWHEAD_ROOT = "https://classic.wowhead.com"
LISTING_URL = WOWHEAD_ROOT + "/items?filter=151:151;2:5;{start}:{end}"
ITEM_URL = WOWHEAD_ROOT + "/item={item_id}"
SPELL_URL = WOWHEAD_ROOT + "/spell={spell_id}"
ZONES_URL = WOWHEAD_ROOT + "/zones"
TALENTS_URL = WOWHEAD_ROOT + "/spells/talents/{class_slug}"
BLIZZARD_ITEM_URL = "https://us.api.blizzard.com/data/wow/item/{item_id}"
BLIZZARD_PARAMS = {"namespace": "static-classic-us", "locale": "en_US"}

# Fetch tuning knobs
API_TIMEOUT = 30  # Seconds per HTTP request
MAX_TRANSPORT_RETRIES = 4  # Only for 429/5xx, never per item
ID_SPACE = 24000  # Highest item id scanned by the listing stage
LISTING_WINDOW = 500  # Wowhead shows about 500 rows per listing page
API_BATCH_SIZE = 100  # Blizzard API allows 100 requests per second
DETAIL_BATCH_SIZE = 20

# Page cache (optional, speeds up reruns)
ENABLE_PAGE_CACHE = False
CACHE_DIR = Path("data/cache")
PAGE_CACHE_DB = CACHE_DIR / "pages.sqlite"

# Credentials
API_TOKEN_FILE = Path("blizzard_token.txt")

# Input/output locations
DATA_DIR = Path(__file__).resolve().parent / "data"
BUILD_DIR = Path("build")
ITEMS_FILE = "items.json"
ZONES_FILE = "zones.json"
TALENTS_FILE = "talents.json"
PROFESSIONS_FILE = "professions.json"
CLASSES_FILE = "classes.json"

# Consumer-side icon templates
ICON_TEMPLATES = {
    "wowhead": "https://wow.zamimg.com/images/wow/icons/large/{icon}.jpg",
    "blizzard": "https://render-classic-us.worldofwarcraft.com/icons/56/{icon}.jpg",
}
DEFAULT_ICON_SRC = "wowhead"

# Scraping markers
GATHERER_TYPE_ITEM = 3
GATHERER_TYPE_SPELL = 6
CONTENT_PHASE_PATTERN = re.compile(r"Added in content phase (\d)")
SELL_PRICE_LABEL = "Sell Price:"

# Wowhead skill line ids -> profession names
SKILL_LINES = {
    129: "First Aid",
    164: "Blacksmithing",
    165: "Leatherworking",
    171: "Alchemy",
    182: "Herbalism",
    185: "Cooking",
    186: "Mining",
    197: "Tailoring",
    202: "Engineering",
    333: "Enchanting",
    356: "Fishing",
    393: "Skinning",
}

# Tooltip markup classes -> tooltip formats
QUALITY_FORMATS = {
    "q0": "Poor",
    "q1": "Common",
    "q2": "Uncommon",
    "q3": "Rare",
    "q4": "Epic",
    "q5": "Legendary",
    "q6": "Artifact",
    "q": "Misc",
}
INDENT_CLASSES = {"indent", "whtt-extra"}

# Blizzard inventory types whose names are not used verbatim
SLOT_OVERRIDES = {
    "THROWN": "Thrown",
}

# Zone listing codes
ZONE_INSTANCE_TYPES = {
    0: "Open World",
    1: "Open World",
    2: "Dungeon",
    3: "Raid",
    4: "Battleground",
    5: "Dungeon",
    6: "Arena",
    7: "Raid",
    8: "Raid",
}
ZONE_TERRITORIES = {
    0: "Alliance",
    1: "Horde",
    2: "Contested",
    3: "Sanctuary",
    4: "PvP",
}

# Talent class pages
TALENT_CLASSES = {
    "druid": "Druid",
    "hunter": "Hunter",
    "mage": "Mage",
    "paladin": "Paladin",
    "priest": "Priest",
    "rogue": "Rogue",
    "shaman": "Shaman",
    "warlock": "Warlock",
    "warrior": "Warrior",
}

# Run logging and telemetry
RUN_ID = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
LOG_DIR = Path("logs")
SUMMARY_FILE = LOG_DIR / f"run_summary_{RUN_ID}.json"
