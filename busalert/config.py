"""
Configuration constants for BusAlert.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Cache lifetime for region, route search and route detail lookups
CACHE_TTL_SECONDS = float(os.getenv("BUSALERT_CACHE_TTL_SECONDS", "300"))

# Decimal places used to quantize coordinates in cache keys (~100m)
COORDINATE_PRECISION = 3

# Simulated progress: one stop every N seconds
TICK_INTERVAL_SECONDS = float(os.getenv("BUSALERT_TICK_SECONDS", "8"))

# ETA estimate per remaining stop (minutes)
MINUTES_PER_STOP = 3

# Alert distance (stops before destination)
MIN_ALERT_DISTANCE = 1
MAX_ALERT_DISTANCE = 5
DEFAULT_ALERT_DISTANCE = 2

# External transit backend (mock provider is used when unset)
TRANSIT_API_URL = os.getenv("BUSALERT_TRANSIT_API_URL")
TRANSIT_API_KEY = os.getenv("BUSALERT_TRANSIT_API_KEY")
PROVIDER_TIMEOUT_SECONDS = float(os.getenv("BUSALERT_PROVIDER_TIMEOUT_SECONDS", "10"))

# Region bounding boxes: (min_lat, max_lat, min_lon, max_lon)
REGION_BOUNDS = {
    "sao-paulo": (-24.0, -23.0, -47.0, -46.0),
    "rio-de-janeiro": (-23.5, -22.5, -44.0, -43.0),
}

# Transit data providers and the regions they serve
TRANSPORT_PROVIDERS = [
    {"id": "google-transit", "name": "Google Maps Transit", "regions": ["global"]},
    {"id": "sptrans", "name": "SPTrans (São Paulo)", "regions": ["sao-paulo", "sp"]},
    {"id": "rio-transit", "name": "Rio de Janeiro Transit", "regions": ["rio-de-janeiro", "rj"]},
]

# Mock backend tables
ORIGIN_STOP_NAME = "Current stop"

BUS_NUMBERS = {
    "sao-paulo": ["175", "702", "856", "477", "309", "675"],
    "rio-de-janeiro": ["474", "583", "638", "415", "392", "511"],
    "global": ["101", "205", "348", "567", "789", "432"],
}

STOP_NAMES = {
    "sao-paulo": [
        ORIGIN_STOP_NAME,
        "Av. Paulista, 1000",
        "Rua Augusta, 500",
        "Praça da República",
        "Estação da Sé",
        "Terminal Bandeira",
    ],
    "rio-de-janeiro": [
        ORIGIN_STOP_NAME,
        "Av. Copacabana, 200",
        "Praça General Osório",
        "Estação Cardeal Arcoverde",
        "Centro da Cidade",
        "Terminal Alvorada",
    ],
    "global": [
        ORIGIN_STOP_NAME,
        "Main Avenue, 100",
        "Shopping District",
        "Central Square",
        "Central Station",
        "Bus Terminal",
    ],
}

DESTINATION_LABELS = {
    "sao-paulo": ["Terminal Bandeira", "Estação da Sé", "Shopping Ibirapuera", "Aeroporto de Congonhas"],
    "rio-de-janeiro": ["Terminal Alvorada", "Centro", "Aeroporto Santos Dumont", "Barra da Tijuca"],
    "global": ["Downtown", "Bus Terminal", "Airport", "Shopping Center"],
}

# Alert cues
NOTIFICATION_TITLE = "BusAlert - Prepare to get off!"
NOTIFICATION_TAG = "destination-alert"
DESTINATION_BEEPS = [(1200, 300), (1000, 300), (1200, 500)]  # (Hz, ms)
ALERT_VIBRATION_PATTERN = [300, 100, 300, 100, 300]
TEST_VIBRATION_PATTERN = [200, 100, 200]
