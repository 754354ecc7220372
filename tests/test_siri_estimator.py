"""Tests for SIRI-VM arrival estimation."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from transit_eta.data.config import EstimatorConfig
from transit_eta.estimation.geo import bounding_box
from transit_eta.models.realtime import JourneyCall, VehicleActivity
from transit_eta.models.responses import Stop
from transit_eta.services.siri_estimator import (
    SiriVmEstimator,
    describe_stops_away,
    estimate_from_activities,
    find_matching_call,
)

NOW = datetime(2026, 10, 18, 8, 0, 0, tzinfo=UTC)
KM_PER_DEGREE_LAT = 111.19493
STOP = Stop(stop_id="390020458", stop_code="ipsgdgd", lat=52.0, lon=1.15)
ALIASES = ["390020458", "ipsgdgd"]


def make_activity(
    monitored_ref: str | None = None,
    onward_refs: list[str] | None = None,
    expected: datetime | None = None,
    aimed: datetime | None = None,
    **kwargs,
) -> VehicleActivity:
    """Activity whose matching call (monitored or last onward) carries the given times."""
    kwargs.setdefault("recorded_at", NOW - timedelta(seconds=30))
    kwargs.setdefault("vehicle_ref", "V1")
    kwargs.setdefault("published_line_name", "66")
    kwargs.setdefault("destination_name", "Town Centre")

    times = {"expected_arrival_time": expected, "aimed_arrival_time": aimed}

    monitored_call = None
    if monitored_ref is not None:
        monitored_call = JourneyCall(
            stop_point_ref=monitored_ref, **({} if onward_refs else times)
        )

    onward_calls = []
    for index, ref in enumerate(onward_refs or []):
        is_last = index == len(onward_refs) - 1
        onward_calls.append(JourneyCall(stop_point_ref=ref, **(times if is_last else {})))

    return VehicleActivity(monitored_call=monitored_call, onward_calls=onward_calls, **kwargs)


class TestFindMatchingCall:
    def test_monitored_call_is_zero_stops_away(self) -> None:
        activity = make_activity("390020458")
        call, stops_away = find_matching_call(activity, ALIASES)
        assert call.stop_point_ref == "390020458"
        assert stops_away == 0

    def test_onward_call_counts_stops(self) -> None:
        activity = make_activity("OTHER1", ["OTHER2", "OTHER3", "390020458"])
        call, stops_away = find_matching_call(activity, ALIASES)
        assert call.stop_point_ref == "390020458"
        assert stops_away == 3

    def test_matches_on_alias(self) -> None:
        activity = make_activity("IPSGDGD")
        assert find_matching_call(activity, ALIASES) is not None

    def test_no_match(self) -> None:
        activity = make_activity("OTHER1", ["OTHER2"])
        assert find_matching_call(activity, ALIASES) is None

    def test_describe_stops_away(self) -> None:
        assert describe_stops_away(0) == "Approaching"
        assert describe_stops_away(1) == "1 stop away"
        assert describe_stops_away(4) == "4 stops away"


class TestEstimateFromActivities:
    def test_expected_time_at_next_stop(self) -> None:
        activity = make_activity("390020458", expected=NOW + timedelta(seconds=180))

        arrivals = estimate_from_activities([activity], ALIASES, STOP, now=NOW)

        assert len(arrivals) == 1
        arrival = arrivals[0]
        assert arrival.time_to_station == 180
        assert arrival.line_name == "66"
        assert arrival.destination == "Town Centre"
        assert arrival.towards == "Town Centre"
        assert arrival.vehicle_id == "V1"
        assert arrival.current_location == "Approaching"
        assert arrival.expected_arrival == NOW + timedelta(seconds=180)
        assert arrival.id == "V1-390020458"
        assert arrival.mode == "bus"

    def test_onward_call_reports_stops_away(self) -> None:
        activity = make_activity(
            "OTHER1", ["OTHER2", "390020458"], expected=NOW + timedelta(minutes=6)
        )

        arrivals = estimate_from_activities([activity], ALIASES, STOP, now=NOW)

        assert arrivals[0].time_to_station == 360
        assert arrivals[0].current_location == "2 stops away"

    def test_aimed_time_used_without_prediction(self) -> None:
        activity = make_activity("390020458", aimed=NOW + timedelta(minutes=10))

        arrivals = estimate_from_activities([activity], ALIASES, STOP, now=NOW)

        assert arrivals[0].time_to_station == 600

    def test_expected_preferred_over_aimed(self) -> None:
        activity = make_activity(
            "390020458",
            expected=NOW + timedelta(minutes=4),
            aimed=NOW + timedelta(minutes=2),
        )

        arrivals = estimate_from_activities([activity], ALIASES, STOP, now=NOW)

        assert arrivals[0].time_to_station == 240

    def test_stale_activity_excluded(self) -> None:
        activity = make_activity(
            "390020458",
            expected=NOW + timedelta(minutes=3),
            recorded_at=NOW - timedelta(minutes=6),
        )

        assert estimate_from_activities([activity], ALIASES, STOP, now=NOW) == []

    def test_missing_recorded_at_kept(self) -> None:
        activity = make_activity(
            "390020458", expected=NOW + timedelta(minutes=3), recorded_at=None
        )

        assert len(estimate_from_activities([activity], ALIASES, STOP, now=NOW)) == 1

    def test_past_time_discarded(self) -> None:
        activity = make_activity("390020458", expected=NOW - timedelta(minutes=1))
        assert estimate_from_activities([activity], ALIASES, STOP, now=NOW) == []

    def test_beyond_an_hour_discarded(self) -> None:
        activity = make_activity("390020458", expected=NOW + timedelta(minutes=61))
        assert estimate_from_activities([activity], ALIASES, STOP, now=NOW) == []

    def test_exactly_an_hour_kept(self) -> None:
        activity = make_activity("390020458", expected=NOW + timedelta(hours=1))
        arrivals = estimate_from_activities([activity], ALIASES, STOP, now=NOW)
        assert arrivals[0].time_to_station == 3600

    def test_distance_fallback_without_times(self) -> None:
        activity = make_activity(
            "390020458", latitude=STOP.lat + 1 / KM_PER_DEGREE_LAT, longitude=STOP.lon
        )

        arrivals = estimate_from_activities([activity], ALIASES, STOP, now=NOW)

        # 1 km at 15 km/h
        assert arrivals[0].time_to_station == pytest.approx(240, abs=1)
        assert arrivals[0].current_location == "1.0km away"

    def test_distance_fallback_capped_at_thirty_minutes(self) -> None:
        activity = make_activity(
            "390020458", latitude=STOP.lat + 8 / KM_PER_DEGREE_LAT, longitude=STOP.lon
        )

        assert estimate_from_activities([activity], ALIASES, STOP, now=NOW) == []

    def test_no_times_and_no_position(self) -> None:
        activity = make_activity("390020458")
        assert estimate_from_activities([activity], ALIASES, STOP, now=NOW) == []

    def test_duplicate_vehicle_keeps_earliest(self) -> None:
        later = make_activity("390020458", expected=NOW + timedelta(seconds=120))
        earlier = make_activity("390020458", expected=NOW + timedelta(seconds=90))

        arrivals = estimate_from_activities([later, earlier], ALIASES, STOP, now=NOW)

        assert [a.time_to_station for a in arrivals] == [90]

    def test_sorted_and_capped(self) -> None:
        activities = [
            make_activity(
                "390020458",
                expected=NOW + timedelta(minutes=15 - i),
                vehicle_ref=f"V{i}",
            )
            for i in range(15)
        ]

        arrivals = estimate_from_activities(activities, ALIASES, STOP, now=NOW)

        assert len(arrivals) == 10
        times = [a.time_to_station for a in arrivals]
        assert times == sorted(times)
        assert times[0] == 60

    def test_unknown_vehicle_and_defaults(self) -> None:
        activity = make_activity(
            "390020458",
            expected=NOW + timedelta(minutes=2),
            vehicle_ref=None,
            published_line_name=None,
            line_ref="FBRI:66",
            destination_name=None,
        )

        arrival = estimate_from_activities([activity], ALIASES, STOP, now=NOW)[0]

        assert arrival.vehicle_id == "unknown-0"
        assert arrival.line_name == "FBRI:66"
        assert arrival.destination == "Unknown destination"


class TestSiriVmEstimator:
    @pytest.mark.asyncio
    async def test_missing_key_is_failure(self) -> None:
        estimator = SiriVmEstimator(EstimatorConfig(BODS_API_KEY=None))

        result = await estimator.estimate(ALIASES, STOP)

        assert result.success is False
        assert result.status_code == 401

    @pytest.mark.asyncio
    async def test_upstream_error_is_failure(
        self, config: EstimatorConfig, http_get: AsyncMock
    ) -> None:
        http_get.return_value = httpx.Response(500, content=b"oops")

        result = await SiriVmEstimator(config).estimate(ALIASES, STOP)

        assert result.success is False
        assert result.status_code == 500
        assert "temporarily unavailable" in result.error

    @pytest.mark.asyncio
    async def test_malformed_document_is_empty_success(
        self, config: EstimatorConfig, http_get: AsyncMock
    ) -> None:
        http_get.return_value = httpx.Response(200, content=b"not xml at all <")

        result = await SiriVmEstimator(config).estimate(ALIASES, STOP)

        assert result.success is True
        assert result.data == []

    @pytest.mark.asyncio
    async def test_estimates_from_feed(
        self, config: EstimatorConfig, http_get: AsyncMock, vehicle_activity, siri_document
    ) -> None:
        now = datetime.now(UTC)
        http_get.return_value = httpx.Response(
            200,
            content=siri_document(
                [
                    vehicle_activity(
                        now,
                        monitored_call={
                            "ref": "390020458",
                            "expected_arrival": now + timedelta(seconds=180),
                        },
                    )
                ]
            ),
        )

        result = await SiriVmEstimator(config).estimate(ALIASES, STOP)

        assert result.success is True
        assert len(result.data) == 1
        assert result.data[0].time_to_station == pytest.approx(180, abs=1)
        expected_bbox = bounding_box(STOP.lat, STOP.lon, config.search_radius_km).to_query()
        assert http_get.call_args.kwargs["params"]["boundingBox"] == expected_bbox

    @pytest.mark.asyncio
    async def test_non_finite_record_does_not_hide_others(
        self, config: EstimatorConfig, http_get: AsyncMock, vehicle_activity, siri_document
    ) -> None:
        now = datetime.now(UTC)
        http_get.return_value = httpx.Response(
            200,
            content=siri_document(
                [
                    vehicle_activity(
                        now,
                        vehicle_ref="GOOD",
                        monitored_call={
                            "ref": "390020458",
                            "expected_arrival": now + timedelta(seconds=180),
                        },
                    ),
                    vehicle_activity(
                        now,
                        vehicle_ref="BAD",
                        lat=float("nan"),
                        lon=1.15,
                        monitored_call={"ref": "390020458", "order": "NaN"},
                    ),
                ]
            ),
        )

        result = await SiriVmEstimator(config).estimate(ALIASES, STOP)

        assert result.success is True
        assert [a.vehicle_id for a in result.data] == ["GOOD"]
        assert result.data[0].time_to_station == pytest.approx(180, abs=1)
