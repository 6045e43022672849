# locus/config.py
from dotenv import load_dotenv
import os

load_dotenv()

# API Keys
IPINFO_TOKEN = os.getenv("IPINFO_TOKEN")

# Runtime parameters
PROVIDER_TIMEOUT_MS = int(os.getenv("PROVIDER_TIMEOUT_MS", "3000"))
BATCH_SIZE = 15
CONCURRENCY = 40
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
TIMEZONE_FUZZY_THRESHOLD = 80

# Movement thresholds (meters)
STATIONARY_THRESHOLD_M = 5.0
SIGNIFICANT_MOVEMENT_M = 10.0

# Substituted for the client address when a request carries x-demo-mode: true
DEMO_IP = "8.8.8.8"

# URLs
IPAPI_CO_URL = "https://ipapi.co/{ip}/json/"
IPINFO_URL = "https://ipinfo.io/{ip}/json"
IP_API_COM_URL = "http://ip-api.com/json/{ip}"
IPWHOIS_URL = "https://ipwho.is/{ip}"
PROVIDER_USER_AGENT = "Mozilla/5.0 UserInfoAPI/1.0"

# File names
INPUT_CSV = "requests.csv"
OUTPUT_JSONL = "estimates.jsonl"
