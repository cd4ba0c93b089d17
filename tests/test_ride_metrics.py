import pytest

from rentals.ride_metrics import (
    calculate_ride_cost,
    distance_between_points,
    format_datetime,
    format_distance,
    format_duration,
    format_speed,
    is_realistic_distance,
    is_realistic_speed,
    is_valid_gps_coordinate,
    parse_hourly_rate,
    process_ride_data,
    speeds_from_path,
    summarize_ride,
    total_distance_from_path,
)


def point(lat, lng, ts, **extra):
    return {"latitude": lat, "longitude": lng, "timestamp": ts, **extra}


def test_distance_between_points_one_degree_of_latitude():
    km = distance_between_points({"latitude": 14.0, "longitude": 121.0}, {"latitude": 15.0, "longitude": 121.0})
    assert km == pytest.approx(111.19, abs=0.01)


def test_distance_between_points_missing_or_malformed():
    assert distance_between_points(None, {"latitude": 1, "longitude": 1}) == 0
    assert distance_between_points({"latitude": "a", "longitude": 1}, {"latitude": 1, "longitude": 1}) == 0


def test_is_valid_gps_coordinate():
    assert is_valid_gps_coordinate(14.589, 120.976)
    assert not is_valid_gps_coordinate(0, 120.976)
    assert not is_valid_gps_coordinate(14.589, 0)
    assert not is_valid_gps_coordinate(91, 120)
    assert not is_valid_gps_coordinate(14, 181)
    assert not is_valid_gps_coordinate("14.5", 120.9)
    assert not is_valid_gps_coordinate(None, None)


def test_is_realistic_distance():
    # No interval means nothing to validate against
    assert is_realistic_distance(5.0, 0)
    assert is_realistic_distance(1.0, 60_000)        # 60 km/h
    assert not is_realistic_distance(2.0, 60_000)    # 120 km/h
    assert not is_realistic_distance(150.0, 36_000_000)  # slow but a 150 km jump


def test_is_realistic_speed():
    assert is_realistic_speed(0)
    assert is_realistic_speed(99.9)
    assert not is_realistic_speed(100)
    assert not is_realistic_speed(-1)
    assert not is_realistic_speed("20")


def test_total_distance_from_path_sums_segments_in_metres():
    path = [
        point(14.5890, 120.9760, 1_000),
        point(14.5900, 120.9760, 61_000),
        point(14.5910, 120.9760, 121_000),
    ]
    assert total_distance_from_path(path) == pytest.approx(222.39, abs=0.1)


def test_total_distance_from_path_skips_bad_samples():
    path = [
        point(14.5890, 120.9760, 1_000),
        point(14.5900, 120.9760, 61_000, accuracy=80),
        point(14.5910, 120.9760, 121_000),
        point(0, 0, 181_000),
    ]
    assert total_distance_from_path(path) == 0


def test_total_distance_from_path_skips_gps_jumps():
    path = [
        point(14.5890, 120.9760, 1_000),
        point(15.5890, 120.9760, 2_000),  # 111 km in one second
        point(15.5900, 120.9760, 62_000),
    ]
    assert total_distance_from_path(path) == pytest.approx(111.19, abs=0.1)


def test_total_distance_from_path_falls_back_to_device_timestamp():
    path = [
        {"latitude": 14.5890, "longitude": 120.9760, "deviceTimestamp": 1_000},
        {"latitude": 15.5890, "longitude": 120.9760, "deviceTimestamp": 2_000},
    ]
    assert total_distance_from_path(path) == 0


def test_total_distance_from_short_path():
    assert total_distance_from_path([]) == 0
    assert total_distance_from_path(None) == 0
    assert total_distance_from_path([point(14.5, 120.9, 1)]) == 0


def test_speeds_from_path():
    path = [{"speed": 10}, {"speedKmh": 20}, {"currentSpeed": 150}, {"speed": 0}]
    assert speeds_from_path(path) == (20.0, 15.0)
    assert speeds_from_path([]) == (0.0, 0.0)


def test_process_ride_data_prefers_stored_values():
    ride = {
        "startTime": 1_000,
        "endTime": 601_000,
        "maxSpeed": 30,
        "averageSpeed": 12,
        "totalDistance": 2500,
        "path": [point(14.5890, 120.9760, 1_000, speed=5), point(14.5900, 120.9760, 61_000, speed=7)],
    }
    processed = process_ride_data(ride)
    assert processed["duration"] == 600_000
    assert processed["maxSpeed"] == 30
    assert processed["averageSpeed"] == 12
    assert processed["totalDistance"] == 2500
    assert processed["distanceTraveled"] == 2500
    assert "duration" not in ride


def test_process_ride_data_derives_missing_values_from_path():
    ride = {
        "startTime": 1_000,
        "path": [point(14.5890, 120.9760, 1_000, speed=5), point(14.5900, 120.9760, 61_000, speed=7)],
    }
    processed = process_ride_data(ride, now=121_000)
    assert processed["duration"] == 120_000
    assert processed["maxSpeed"] == 7
    assert processed["averageSpeed"] == 6
    assert processed["totalDistance"] == pytest.approx(111.19, abs=0.1)


def test_process_ride_data_clamps_speeds():
    processed = process_ride_data({"startTime": 0, "endTime": 1, "maxSpeed": 250, "averageSpeed": -3})
    assert processed["maxSpeed"] == 100
    assert processed["averageSpeed"] == 0


def test_calculate_ride_cost_minimum_billable():
    assert calculate_ride_cost(0, 5 * 60_000, 60) == 15.0
    assert calculate_ride_cost(0, 90 * 60_000, 50) == 75.0
    assert calculate_ride_cost(10_000, 0, 40) == 10.0


def test_parse_hourly_rate():
    assert parse_hourly_rate({"priceValue": 25}) == 25.0
    assert parse_hourly_rate({"priceValue": 0, "price": "₱30/hr"}) == 30.0
    assert parse_hourly_rate({"price": "free"}) == 50.0
    assert parse_hourly_rate(None) == 50.0


def test_format_distance():
    assert format_distance(500.4) == "500 m"
    assert format_distance(1234) == "1.23 km"
    assert format_distance(12345) == "12.3 km"
    assert format_distance(-1) == "0 m"


def test_format_speed():
    assert format_speed(5) == "5.0 km/h"
    assert format_speed(25.5) == "26 km/h"
    assert format_speed(100) == "99+ km/h"


def test_format_duration():
    assert format_duration(65_000) == "1:05"
    assert format_duration(3_723_000) == "1:02:03"
    assert format_duration(-5) == "0:00"


def test_format_datetime_empty():
    assert format_datetime(None) == "N/A"
    assert format_datetime(0) == "N/A"


def test_summarize_ride_adds_display_strings():
    summary = summarize_ride({"startTime": 0, "endTime": 65_000, "totalDistance": 1234, "maxSpeed": 5})
    assert summary["display"]["distance"] == "1.23 km"
    assert summary["display"]["duration"] == "1:05"
    assert summary["display"]["maxSpeed"] == "5.0 km/h"
