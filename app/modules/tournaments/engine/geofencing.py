"""Great-circle distances for venue check-in"""

from typing import Dict, Tuple
import math

EARTH_RADIUS_METERS = 6371e3


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in metres"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def is_within_geofence(user_lat: float, user_lng: float, target_lat: float, target_lng: float, radius_meters: float) -> bool:
    return calculate_distance(user_lat, user_lng, target_lat, target_lng) <= radius_meters


def validate_geofence(
    user_lat: float,
    user_lng: float,
    target_lat: float,
    target_lng: float,
    radius_meters: float,
) -> Tuple[bool, int]:
    """(inside the radius, rounded distance in metres)"""
    distance = calculate_distance(user_lat, user_lng, target_lat, target_lng)
    return distance <= radius_meters, round(distance)


def is_valid_coordinates(lat: float, lng: float) -> bool:
    if lat is None or lng is None or math.isnan(lat) or math.isnan(lng):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def get_geofence_bounding_box(center_lat: float, center_lng: float, radius_meters: float) -> Dict[str, Dict[str, float]]:
    """North-east and south-west corners of the box around a circular geofence"""
    angular = radius_meters / EARTH_RADIUS_METERS
    lat = math.radians(center_lat)
    lng = math.radians(center_lng)
    d_lng = math.asin(math.sin(angular) / math.cos(lat))
    return {
        "ne": {"lat": math.degrees(lat + angular), "lng": math.degrees(lng + d_lng)},
        "sw": {"lat": math.degrees(lat - angular), "lng": math.degrees(lng - d_lng)},
    }
