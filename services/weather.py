"""
Weather Service

Looks up today's weather for a Korean region, either from open-meteo or
from a seasonal estimate, and resolves coordinates back to a region name.
"""

import logging
import random
from datetime import date

import requests

from models.constants import REGIONS

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
REVERSE_GEOCODING_URL = "https://nominatim.openstreetmap.org/reverse"
USER_AGENT = "wearly-outfit-assistant/1.0"

# representative city per region
REGION_COORDINATES = {
    "서울": (37.5665, 126.9780),
    "부산": (35.1796, 129.0756),
    "대구": (35.8714, 128.6014),
    "인천": (37.4563, 126.7052),
    "광주": (35.1595, 126.8526),
    "대전": (36.3504, 127.3845),
    "울산": (35.5384, 129.3114),
    "세종": (36.4800, 127.2890),
    "경기": (37.2636, 127.0286),
    "강원": (37.8813, 127.7298),
    "충북": (36.6424, 127.4890),
    "충남": (36.8151, 127.1139),
    "전북": (35.8242, 127.1480),
    "전남": (34.8118, 126.3922),
    "경북": (36.5684, 128.7294),
    "경남": (35.2280, 128.6811),
    "제주": (33.4996, 126.5312),
}

# full province names as returned by reverse geocoding
PROVINCE_ALIASES = {
    "충청북도": "충북",
    "충청남도": "충남",
    "전라북도": "전북",
    "전북특별자치도": "전북",
    "전라남도": "전남",
    "경상북도": "경북",
    "경상남도": "경남",
    "경기도": "경기",
    "강원도": "강원",
    "강원특별자치도": "강원",
    "제주특별자치도": "제주",
}

WEATHER_CODE_SUMMARIES = {
    0: "맑음", 1: "구름 조금", 2: "구름 많음", 3: "흐림",
    45: "안개", 48: "안개",
    51: "이슬비", 53: "이슬비", 55: "이슬비", 56: "이슬비", 57: "이슬비",
    61: "비", 63: "비", 65: "비", 66: "비", 67: "비",
    71: "눈", 73: "눈", 75: "눈", 77: "눈",
    80: "소나기", 81: "소나기", 82: "소나기",
    85: "눈", 86: "눈",
    95: "뇌우", 96: "뇌우", 99: "뇌우",
}

SEASONAL_CONDITIONS = ["맑음", "구름 조금", "구름 많음", "흐림", "비", "눈"]


def _region_coordinates(region, timeout):
    if region in REGION_COORDINATES:
        return REGION_COORDINATES[region]

    response = requests.get(
        GEOCODING_URL,
        params={"name": region, "count": 1, "language": "ko", "format": "json"},
        timeout=timeout,
    )
    response.raise_for_status()
    results = response.json().get("results") or []
    if not results:
        raise ValueError(f"Unknown region: {region}")
    return results[0]["latitude"], results[0]["longitude"]


def fetch_open_meteo_weather(region, timeout=6):
    """
    Fetch today's weather for a region from open-meteo.

    Returns:
        dict: {"region", "summary", "temp", "min_temp", "max_temp"}

    Raises:
        requests.RequestException: On transport errors
        ValueError: If the region cannot be located or the payload is incomplete
    """
    latitude, longitude = _region_coordinates(region, timeout)

    response = requests.get(
        FORECAST_URL,
        params={
            "latitude": latitude,
            "longitude": longitude,
            "current": "temperature_2m,weather_code",
            "daily": "temperature_2m_min,temperature_2m_max",
            "forecast_days": 1,
            "timezone": "Asia/Seoul",
        },
        timeout=timeout,
    )
    response.raise_for_status()
    data = response.json()

    current = data.get("current") or {}
    daily = data.get("daily") or {}
    try:
        temp = current["temperature_2m"]
        min_temp = daily["temperature_2m_min"][0]
        max_temp = daily["temperature_2m_max"][0]
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError(f"Incomplete forecast payload: {e}")

    return {
        "region": region,
        "summary": WEATHER_CODE_SUMMARIES.get(current.get("weather_code"), "맑음"),
        "temp": round(temp),
        "min_temp": round(min_temp),
        "max_temp": round(max_temp),
    }


def estimate_seasonal_weather(region, today=None, rng=None):
    """
    Estimate plausible weather from the month alone.

    Used when no forecast source is configured. Winter, spring, summer and
    fall each have a base temperature and spread; the condition is drawn with
    weights that favour clear skies when warm and snow when cold.
    """
    today = today or date.today()
    rng = rng or random.Random()
    month = today.month

    if month == 12 or month <= 2:
        base_temp, variation = 0, 8
    elif month <= 5:
        base_temp, variation = 15, 8
    elif month <= 8:
        base_temp, variation = 28, 5
    else:
        base_temp, variation = 18, 7

    temp = round(base_temp + (rng.random() * variation - variation / 2))
    min_temp = temp - round(rng.random() * 3 + 2)
    max_temp = temp + round(rng.random() * 3 + 2)

    if temp < 5:
        weights = [2, 2, 3, 3, 1, 2]
    elif temp > 25:
        weights = [5, 3, 2, 1, 1, 0]
    else:
        weights = [3, 3, 3, 2, 1, 0]
    summary = rng.choices(SEASONAL_CONDITIONS, weights=weights, k=1)[0]

    return {
        "region": region,
        "summary": summary,
        "temp": temp,
        "min_temp": min_temp,
        "max_temp": max_temp,
    }


def get_weather(region, provider="open-meteo"):
    """Today's weather for ``region`` from the configured provider"""
    if provider == "seasonal":
        return estimate_seasonal_weather(region)
    return fetch_open_meteo_weather(region)


def weather_context(region, provider="open-meteo"):
    """
    One-line weather context for prompts.

    Returns:
        str | None: None when the lookup fails, so prompts can omit the line
    """
    try:
        weather = get_weather(region, provider)
    except (requests.RequestException, ValueError) as e:
        logger.warning("Weather lookup for %s failed: %s", region, e)
        return None
    return f"{weather['summary']}, {weather['temp']}°C"


def match_region(name):
    """Map an administrative area name to one of REGIONS"""
    if not name:
        return None
    name = name.strip()
    if name in PROVINCE_ALIASES:
        return PROVINCE_ALIASES[name]
    for region in REGIONS:
        if name.startswith(region):
            return region
    return None


def get_region_from_coords(latitude, longitude, timeout=6):
    """
    Resolve coordinates to a region name from REGIONS.

    Returns:
        str | None: The region, or None when it is outside the known regions

    Raises:
        requests.RequestException: On transport errors
    """
    response = requests.get(
        REVERSE_GEOCODING_URL,
        params={
            "lat": latitude,
            "lon": longitude,
            "format": "json",
            "accept-language": "ko",
            "zoom": 10,
        },
        headers={"User-Agent": USER_AGENT},
        timeout=timeout,
    )
    response.raise_for_status()
    address = response.json().get("address") or {}

    for key in ("province", "state", "city"):
        region = match_region(address.get(key))
        if region:
            return region
    return None
