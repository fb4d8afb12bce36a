"""
Nominatim geocoding and OSRM routing helpers.
"""

import logging

import requests
from django.conf import settings

from ..road_types import (
    UNNAMED_ROAD,
    build_segment,
    classify_step,
    distance_by_type,
    resolve_speeds,
)

logger = logging.getLogger(__name__)

NOMINATIM_BASE = getattr(settings, 'NOMINATIM_BASE_URL', 'https://nominatim.openstreetmap.org').rstrip('/')
OSRM_BASE = getattr(settings, 'OSRM_BASE_URL', 'https://router.project-osrm.org/route/v1/driving').rstrip('/')

HEADERS = {
    'User-Agent': getattr(settings, 'ROUTING_USER_AGENT', 'FreightPlanner/1.0'),
    'Accept': 'application/json',
}

GEOCODE_TIMEOUT_SECONDS = 5
ROUTE_TIMEOUT_SECONDS = 12


def geocode_location(query: str):
    q = (query or '').strip()
    if not q:
        raise ValueError('Location cannot be empty.')

    resp = requests.get(
        f'{NOMINATIM_BASE}/search',
        params={'q': q, 'format': 'json', 'limit': 1},
        headers=HEADERS,
        timeout=GEOCODE_TIMEOUT_SECONDS,
    )
    resp.raise_for_status()

    results = resp.json()
    if not results:
        raise ValueError(f"Could not find location: '{query}'. Check the address and try again.")

    first = results[0]
    label = first.get('display_name', q)
    return {
        'lat': float(first['lat']),
        'lng': float(first['lon']),
        'label': str(label).split(',')[0].strip(),
    }


def reverse_geocode(lat: float, lng: float) -> str:
    resp = requests.get(
        f'{NOMINATIM_BASE}/reverse',
        params={'format': 'json', 'lat': lat, 'lon': lng, 'addressdetails': 1},
        headers=HEADERS,
        timeout=GEOCODE_TIMEOUT_SECONDS,
    )
    resp.raise_for_status()

    data = resp.json() or {}
    address = data.get('address') or {}
    city = (
        address.get('city')
        or address.get('town')
        or address.get('village')
        or address.get('municipality')
    )
    road = address.get('road') or address.get('pedestrian')

    if city and road:
        return f'{road}, {city}'
    if city:
        return city
    display_name = data.get('display_name') or ''
    if display_name:
        return display_name.split(',')[0].strip()
    return f'{lat:.4f}, {lng:.4f}'


def _fetch_route(start, end):
    url = f"{OSRM_BASE}/{start['lng']},{start['lat']};{end['lng']},{end['lat']}"
    params = {
        'overview': 'full',
        'geometries': 'geojson',
        'steps': 'true',
    }
    resp = requests.get(url, params=params, headers=HEADERS, timeout=ROUTE_TIMEOUT_SECONDS)
    if resp.status_code == 400:
        try:
            message = resp.json().get('message')
        except ValueError:
            message = None
        friendly = 'No drivable route found between the selected locations.'
        if message:
            raise ValueError(f'{friendly} Provider message: {message}')
        raise ValueError(friendly)
    resp.raise_for_status()

    data = resp.json()
    routes = data.get('routes') or []
    if not routes:
        raise ValueError(data.get('message') or 'Routing service returned no route results.')
    return routes[0]


def get_route_details(start, end, speeds=None):
    """
    Fetch a route between two {'lat', 'lng'} points and split it into
    classified segments. Consecutive steps on the same road and of the same
    type are merged into one segment.
    """
    speeds = resolve_speeds(speeds)
    route = _fetch_route(start, end)

    coords_raw = (route.get('geometry') or {}).get('coordinates', [])
    lat_lngs = [[c[1], c[0]] for c in coords_raw]

    segments = []
    current = None     # [name, road_type, distance_m]
    for leg in route.get('legs', []):
        for step in leg.get('steps', []):
            ref = step.get('ref') or ''
            road_name = step.get('name') or ''
            road_type = classify_step(
                ref=ref,
                name=road_name,
                mode=step.get('mode') or '',
                maneuver_type=(step.get('maneuver') or {}).get('type') or '',
            )
            name = ref or road_name or UNNAMED_ROAD
            distance_m = float(step.get('distance') or 0.0)

            if current and current[0] == name and current[1] == road_type:
                current[2] += distance_m
                continue
            if current:
                segments.append(build_segment(current[0], current[1], current[2], speeds))
            current = [name, road_type, distance_m]

    if current:
        segments.append(build_segment(current[0], current[1], current[2], speeds))

    total_distance_km = round(float(route.get('distance') or 0.0) / 1000.0, 1)
    logger.info(
        'Route %s,%s -> %s,%s: %.1f km in %d segments',
        start['lat'], start['lng'], end['lat'], end['lng'], total_distance_km, len(segments),
    )

    return {
        'segments': segments,
        'distance_by_type': distance_by_type(segments),
        'total_distance_km': total_distance_km,
        'coordinates': lat_lngs,
    }
