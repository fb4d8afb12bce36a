import math
from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase, TestCase, override_settings
from openai import OpenAIError
from requests import HTTPError, Timeout
from rest_framework.test import APITestCase

from .costs import CostSettings, calculate_transport_costs, cost_breakdown_to_dict
from .driver_rules import (
    BREAK,
    DRIVING,
    REST,
    DriverPolicy,
    MAX_PURE_DRIVING_HOURS,
    MAX_STINTS,
    InvalidInput,
    logistics_time_to_dict,
    plan_driving_schedule,
    simulate,
)
from .models import CostEstimate, DeliveryPlan, TruckProfile
from .road_types import (
    CITY,
    DEFAULT_SPEEDS,
    FERRY,
    HIGHWAY,
    NATIONAL,
    InvalidSpeed,
    RouteSegment,
    build_segment,
    classify_step,
    distance_by_type,
    pure_driving_hours,
    resolve_speeds,
)
from .services import osrm, summary


def _response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


class DriverRulesTests(SimpleTestCase):
    def _activities(self, result):
        return [entry.activity for entry in result.schedule]

    def test_zero_driving_needs_no_stops(self):
        result = simulate(0)
        self.assertEqual(result.total_duration_hours, 0)
        self.assertEqual(result.break_count, 0)
        self.assertEqual(result.rest_count, 0)
        self.assertEqual(result.schedule, ())

    def test_short_route_below_every_limit(self):
        result = simulate(4.0)
        self.assertEqual(result.total_duration_hours, 4.0)
        self.assertEqual(result.break_count, 0)
        self.assertEqual(result.rest_count, 0)
        self.assertEqual(self._activities(result), [DRIVING])

    def test_single_short_break_after_continuous_limit(self):
        result = simulate(5.0, 9.0, 11.0)
        self.assertEqual(result.break_count, 1)
        self.assertEqual(result.rest_count, 0)
        self.assertEqual(result.total_duration_hours, 5.75)
        self.assertEqual(self._activities(result), [DRIVING, BREAK, DRIVING])
        last = result.schedule[-1]
        self.assertAlmostEqual(last.start_hour, 5.25)
        self.assertAlmostEqual(last.end_hour, 5.75)

    def test_route_ending_exactly_on_daily_cap_gets_no_trailing_rest(self):
        result = simulate(9.0, 9.0, 11.0)
        self.assertEqual(result.break_count, 1)
        self.assertEqual(result.rest_count, 0)
        self.assertEqual(result.total_duration_hours, 9.75)
        self.assertEqual(result.schedule[-1].activity, DRIVING)

    def test_multi_day_route(self):
        result = simulate(20.0, 9.0, 11.0)
        self.assertEqual(result.driving_time_hours, 20.0)
        self.assertEqual(
            result.total_duration_hours,
            20.0 + result.break_time_hours + result.rest_time_hours,
        )
        self.assertEqual(result.break_count, 2)
        self.assertEqual(result.rest_count, 2)
        self.assertEqual(result.total_duration_hours, 43.5)
        self.assertEqual(
            self._activities(result),
            [DRIVING, BREAK, DRIVING, REST, DRIVING, BREAK, DRIVING, REST, DRIVING],
        )

    def test_extended_daily_cap(self):
        result = simulate(20.0, 10.0, 11.0)
        self.assertTrue(result.is_extended_driving)
        self.assertEqual(result.break_count, 4)
        self.assertEqual(result.rest_count, 1)
        self.assertEqual(result.total_duration_hours, 34.0)

    def test_extended_flag_follows_daily_cap(self):
        self.assertTrue(simulate(3.0, 10.0).is_extended_driving)
        self.assertFalse(simulate(3.0, 9.0).is_extended_driving)

    def test_reduced_daily_rest(self):
        result = simulate(20.0, 9.0, 9.0)
        self.assertEqual(result.rest_time_hours, 18.0)
        self.assertEqual(result.daily_rest_duration, 9.0)
        self.assertEqual(result.total_duration_hours, 39.5)

    def test_daily_rest_takes_priority_over_short_break(self):
        # A 4.5h daily cap makes every stint hit both limits at once.
        result = simulate(10.0, 4.5, 11.0)
        self.assertEqual(result.rest_count, 2)
        self.assertEqual(result.break_count, 0)
        self.assertEqual(result.total_duration_hours, 32.0)

    def test_unusual_policy_values_are_applied_as_given(self):
        result = simulate(8.0, 6.0, 11.0)
        self.assertEqual(self._activities(result), [DRIVING, BREAK, DRIVING, REST, DRIVING])
        self.assertEqual(result.total_duration_hours, 19.75)

    def test_zero_length_rest_is_still_counted(self):
        result = simulate(20.0, 9.0, 0.0)
        self.assertEqual(result.rest_count, 2)
        self.assertEqual(result.rest_time_hours, 0.0)

    def test_repeated_calls_are_identical(self):
        self.assertEqual(simulate(17.3, 10.0, 9.0), simulate(17.3, 10.0, 9.0))

    def test_totals_are_consistent(self):
        for hours in (0.1, 3.3, 4.5, 7.25, 13.0, 18.1, 27.77, 45.0):
            result = simulate(hours)
            self.assertEqual(
                result.total_duration_hours,
                result.driving_time_hours + result.break_time_hours + result.rest_time_hours,
            )
            self.assertEqual(result.break_count * 0.75, result.break_time_hours)
            self.assertEqual(result.rest_count * 11.0, result.rest_time_hours)
            driven = sum(e.duration for e in result.schedule if e.activity == DRIVING)
            self.assertAlmostEqual(driven, hours, places=3)

    def test_total_duration_never_decreases_with_more_driving(self):
        for max_daily in (9.0, 10.0):
            previous = -1.0
            for quarter in range(0, 160):
                total = simulate(quarter / 4.0, max_daily).total_duration_hours
                self.assertGreaterEqual(total, previous)
                previous = total

    def test_no_stint_exceeds_limits(self):
        result = simulate(50.0, 10.0, 11.0)
        driven_today = 0.0
        for entry in result.schedule:
            if entry.activity == DRIVING:
                self.assertLessEqual(entry.duration, 4.5)
                driven_today += entry.duration
                self.assertLessEqual(driven_today, 10.0)
            elif entry.activity == REST:
                driven_today = 0.0

    def test_negative_driving_rejected(self):
        with self.assertRaises(InvalidInput):
            simulate(-1)

    def test_non_finite_driving_rejected(self):
        for value in (math.nan, math.inf, 'abc', None):
            with self.assertRaises(InvalidInput):
                simulate(value)

    def test_invalid_policy_rejected(self):
        with self.assertRaises(InvalidInput):
            simulate(5.0, 0.0)
        with self.assertRaises(InvalidInput):
            simulate(5.0, -9.0)
        with self.assertRaises(InvalidInput):
            simulate(5.0, 9.0, -1.0)
        with self.assertRaises(InvalidInput):
            plan_driving_schedule(5.0, DriverPolicy(max_continuous_driving_hours=0))

    def test_leftover_within_stop_tolerance_needs_no_stop(self):
        result = simulate(9.0005, 9.0, 11.0)
        self.assertEqual(result.rest_count, 0)
        self.assertEqual(result.break_count, 1)
        self.assertAlmostEqual(result.total_duration_hours, 9.7505)
        self.assertEqual(result.schedule[-1].activity, DRIVING)

        self.assertEqual(simulate(4.5008).break_count, 0)
        self.assertEqual(simulate(4.502).break_count, 1)

    def test_tiny_driving_time_is_treated_as_none(self):
        result = simulate(0.0005)
        self.assertEqual(result.schedule, ())
        self.assertEqual(result.total_duration_hours, 0.0005)

    def test_booleans_rejected(self):
        with self.assertRaises(InvalidInput):
            simulate(True)
        with self.assertRaises(InvalidInput):
            simulate(5.0, True)

    def test_driving_above_ceiling_rejected(self):
        for value in (MAX_PURE_DRIVING_HOURS + 0.5, 2e6, 1e300):
            with self.assertRaises(InvalidInput):
                simulate(value)
        result = simulate(MAX_PURE_DRIVING_HOURS)
        self.assertEqual(result.driving_time_hours, MAX_PURE_DRIVING_HOURS)
        self.assertLess(len(result.schedule), 2 * MAX_STINTS)

    def test_policy_limits_too_small_for_route_rejected(self):
        with self.assertRaises(InvalidInput):
            simulate(100.0, 0.01)

    def test_invalid_input_is_a_value_error(self):
        self.assertTrue(issubclass(InvalidInput, ValueError))

    def test_policy_for_options(self):
        policy = DriverPolicy.for_options(allow_extended_driving=True, daily_rest_duration=9.0)
        self.assertEqual(policy.max_daily_driving_hours, 10.0)
        self.assertEqual(policy.daily_rest_duration_hours, 9.0)
        self.assertTrue(policy.is_extended_driving)
        self.assertFalse(DriverPolicy.for_options().is_extended_driving)

    def test_to_dict(self):
        data = logistics_time_to_dict(simulate(5.0))
        self.assertEqual(data['total_duration_hours'], 5.75)
        self.assertEqual(data['break_count'], 1)
        self.assertEqual([e['activity'] for e in data['schedule']], [DRIVING, BREAK, DRIVING])
        self.assertEqual(data['schedule'][1]['duration'], 0.75)


class RoadTypeTests(SimpleTestCase):
    def test_classify_step(self):
        self.assertEqual(classify_step(ref='A2'), HIGHWAY)
        self.assertEqual(classify_step(ref='S8'), HIGHWAY)
        self.assertEqual(classify_step(ref='E30; A2'), HIGHWAY)
        self.assertEqual(classify_step(name='Autostrada Wolności'), HIGHWAY)
        self.assertEqual(classify_step(ref='DK50'), NATIONAL)
        self.assertEqual(classify_step(ref='DW902'), NATIONAL)
        self.assertEqual(classify_step(ref='92'), NATIONAL)
        self.assertEqual(classify_step(name='Marszałkowska'), CITY)
        self.assertEqual(classify_step(), CITY)

    def test_ferry_wins_over_road_refs(self):
        self.assertEqual(classify_step(ref='E65', mode='ferry'), FERRY)
        self.assertEqual(classify_step(maneuver_type='ferry'), FERRY)
        self.assertEqual(classify_step(name='Prom Świnoujście - Ystad'), FERRY)

    def test_resolve_speeds(self):
        self.assertEqual(resolve_speeds(), DEFAULT_SPEEDS)
        self.assertEqual(resolve_speeds({CITY: 40})[CITY], 40.0)
        for bad in ({CITY: 0}, {CITY: -5}, {CITY: 'fast'}, {'boat': 10}):
            with self.assertRaises(InvalidSpeed):
                resolve_speeds(bad)

    def test_pure_driving_hours(self):
        segments = [
            RouteSegment('A2', HIGHWAY, 160.0, 120),
            RouteSegment('Marszałkowska', CITY, 30.0, 60),
        ]
        self.assertAlmostEqual(pure_driving_hours(segments, DEFAULT_SPEEDS), 3.0)
        with self.assertRaises(InvalidSpeed):
            pure_driving_hours(segments, {HIGHWAY: 80.0, CITY: 0})

    def test_build_segment(self):
        segment = build_segment('A2', HIGHWAY, 80040.0, DEFAULT_SPEEDS)
        self.assertEqual(segment.distance_km, 80.0)
        self.assertEqual(segment.duration_minutes, 60)
        self.assertEqual(build_segment('x', CITY, 1000.0, {CITY: 0}).duration_minutes, 0)

    def test_distance_by_type(self):
        segments = [
            RouteSegment('Marszałkowska', CITY, 3.0, 6),
            RouteSegment('A2', HIGHWAY, 80.0, 60),
            RouteSegment('A1', HIGHWAY, 20.4, 15),
        ]
        self.assertEqual(
            [(d['road_type'], d['distance_km']) for d in distance_by_type(segments)],
            [(HIGHWAY, 100.4), (CITY, 3.0)],
        )


class TransportCostTests(SimpleTestCase):
    def test_total_freight_in_pln(self):
        costs = calculate_transport_costs(distance_km=1000, freight_value=5000)
        self.assertAlmostEqual(costs.revenue_pln, 5000)
        self.assertAlmostEqual(costs.fuel_cost, 1700)
        self.assertAlmostEqual(costs.toll_cost, 400)
        self.assertAlmostEqual(costs.maintenance_cost, 650)
        self.assertAlmostEqual(costs.total_ops_cost, 2750)
        self.assertAlmostEqual(costs.gross_profit, 2250)
        self.assertAlmostEqual(costs.cit_cost, 427.5)
        self.assertAlmostEqual(costs.net_profit, 1822.5)
        self.assertAlmostEqual(costs.net_per_km, 1.8225)
        self.assertAlmostEqual(costs.break_even, 2750)

    def test_rate_per_km_in_eur(self):
        costs = calculate_transport_costs(
            distance_km=100, freight_value=1.0, is_rate_per_km=True, is_eur=True, exchange_rate=4.3,
        )
        self.assertAlmostEqual(costs.revenue_pln, 430)

    def test_no_tax_on_a_loss(self):
        costs = calculate_transport_costs(distance_km=1000, freight_value=0)
        self.assertAlmostEqual(costs.gross_profit, -2750)
        self.assertEqual(costs.cit_cost, 0)
        self.assertAlmostEqual(costs.net_profit, -2750)

    def test_zero_distance(self):
        costs = calculate_transport_costs(distance_km=0, freight_value=100)
        self.assertEqual(costs.net_per_km, 0)

    def test_custom_settings(self):
        settings = CostSettings(fuel_price=6.0, consumption=30, toll_rate=0, maintenance_rate=0, cit_rate=0)
        costs = calculate_transport_costs(distance_km=100, freight_value=1000, settings=settings)
        self.assertAlmostEqual(costs.total_ops_cost, 180)
        self.assertAlmostEqual(costs.net_profit, 820)

    def test_negative_values_rejected(self):
        with self.assertRaises(ValueError):
            calculate_transport_costs(distance_km=-1, freight_value=100)
        with self.assertRaises(ValueError):
            calculate_transport_costs(distance_km=1, freight_value=100, settings=CostSettings(toll_rate=-1))

    def test_to_dict_rounds(self):
        data = cost_breakdown_to_dict(calculate_transport_costs(distance_km=333, freight_value=1000))
        self.assertEqual(data['toll_cost'], 133.2)
        self.assertEqual(set(data), {
            'revenue_pln', 'fuel_cost', 'toll_cost', 'maintenance_cost', 'total_ops_cost',
            'gross_profit', 'cit_cost', 'net_profit', 'net_per_km', 'break_even',
        })


class RoutingServiceTests(SimpleTestCase):
    ROUTE_PAYLOAD = {
        'routes': [{
            'distance': 98000.0,
            'geometry': {'coordinates': [[21.0, 52.2], [21.1, 52.3]]},
            'legs': [{
                'steps': [
                    {'ref': 'A2', 'name': 'Autostrada Wolności', 'distance': 50000.0,
                     'mode': 'driving', 'maneuver': {'type': 'depart'}},
                    {'ref': 'A2', 'name': '', 'distance': 30000.0,
                     'mode': 'driving', 'maneuver': {'type': 'continue'}},
                    {'name': 'Marszałkowska', 'distance': 3000.0,
                     'mode': 'driving', 'maneuver': {'type': 'turn'}},
                    {'name': '', 'distance': 15000.0,
                     'mode': 'ferry', 'maneuver': {'type': 'ferry'}},
                ],
            }],
        }],
    }

    START = {'lat': 52.2, 'lng': 21.0}
    END = {'lat': 52.3, 'lng': 21.1}

    @patch('logistics.services.osrm.requests.get')
    def test_route_segments_are_classified_and_merged(self, mock_get):
        mock_get.return_value = _response(self.ROUTE_PAYLOAD)
        route = osrm.get_route_details(self.START, self.END)

        self.assertEqual(
            [(s.name, s.road_type, s.distance_km, s.duration_minutes) for s in route['segments']],
            [
                ('A2', HIGHWAY, 80.0, 60),
                ('Marszałkowska', CITY, 3.0, 6),
                ('Unnamed road', FERRY, 15.0, 60),
            ],
        )
        self.assertEqual(route['total_distance_km'], 98.0)
        self.assertEqual(route['coordinates'], [[52.2, 21.0], [52.3, 21.1]])
        self.assertAlmostEqual(pure_driving_hours(route['segments'], DEFAULT_SPEEDS), 2.1)

        url = mock_get.call_args[0][0]
        self.assertTrue(url.endswith('/21.0,52.2;21.1,52.3'))
        self.assertEqual(mock_get.call_args[1]['params']['steps'], 'true')

    @patch('logistics.services.osrm.requests.get')
    def test_custom_speeds_change_segment_durations(self, mock_get):
        mock_get.return_value = _response(self.ROUTE_PAYLOAD)
        route = osrm.get_route_details(self.START, self.END, {HIGHWAY: 40})
        self.assertEqual(route['segments'][0].duration_minutes, 120)

    @patch('logistics.services.osrm.requests.get')
    def test_no_route(self, mock_get):
        mock_get.return_value = _response({'routes': [], 'message': 'Impossible route'})
        with self.assertRaises(ValueError):
            osrm.get_route_details(self.START, self.END)

        mock_get.return_value = _response({'code': 'NoRoute', 'message': 'No route'}, status_code=400)
        with self.assertRaises(ValueError):
            osrm.get_route_details(self.START, self.END)

    @patch('logistics.services.osrm.requests.get')
    def test_geocode_location(self, mock_get):
        mock_get.return_value = _response([
            {'lat': '52.2297', 'lon': '21.0122', 'display_name': 'Warszawa, mazowieckie, Polska'},
        ])
        point = osrm.geocode_location('Warszawa')
        self.assertEqual(point, {'lat': 52.2297, 'lng': 21.0122, 'label': 'Warszawa'})

        mock_get.return_value = _response([])
        with self.assertRaises(ValueError):
            osrm.geocode_location('Nowhere at all')
        with self.assertRaises(ValueError):
            osrm.geocode_location('   ')

    @patch('logistics.services.osrm.requests.get')
    def test_reverse_geocode(self, mock_get):
        mock_get.return_value = _response({'address': {'road': 'Marszałkowska', 'city': 'Warszawa'}})
        self.assertEqual(osrm.reverse_geocode(52.23, 21.01), 'Marszałkowska, Warszawa')

        mock_get.return_value = _response({'address': {'town': 'Kutno'}})
        self.assertEqual(osrm.reverse_geocode(52.23, 19.36), 'Kutno')

        mock_get.return_value = _response({'display_name': 'Las Kabacki, Warszawa'})
        self.assertEqual(osrm.reverse_geocode(52.12, 21.05), 'Las Kabacki')

        mock_get.return_value = _response({})
        self.assertEqual(osrm.reverse_geocode(52.123456, 21.0), '52.1235, 21.0000')


class RouteSummaryTests(SimpleTestCase):
    ROUTE = {
        'total_distance_km': 98.0,
        'distance_by_type': distance_by_type([
            RouteSegment('A2', HIGHWAY, 80.0, 60),
            RouteSegment('Unnamed road', FERRY, 18.0, 72),
        ]),
        'segments': [
            RouteSegment('A2', HIGHWAY, 80.0, 60),
            RouteSegment('Unnamed road', FERRY, 18.0, 72),
        ],
    }

    @override_settings(OPENAI_API_KEY='')
    def test_technical_summary_without_api_key(self):
        text = summary.write_route_summary('Warszawa', 'Ystad', self.ROUTE)
        self.assertIn('98.0 km total', text)
        self.assertIn('Ferry crossings: 18.0 km', text)

    @override_settings(OPENAI_API_KEY='test-key')
    @patch('logistics.services.summary.OpenAI')
    def test_model_text_is_returned(self, mock_openai):
        create = mock_openai.return_value.chat.completions.create
        create.return_value.choices = [MagicMock(message=MagicMock(content='  Route via A2 and a ferry.  '))]

        text = summary.write_route_summary('Warszawa', 'Ystad', self.ROUTE)

        self.assertEqual(text, 'Route via A2 and a ferry.')
        prompt = create.call_args[1]['messages'][1]['content']
        self.assertIn('Total distance: 98.0 km', prompt)
        self.assertIn('ferry crossing', prompt)

    @override_settings(OPENAI_API_KEY='test-key')
    @patch('logistics.services.summary.OpenAI')
    def test_model_failure_falls_back(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = OpenAIError('boom')
        text = summary.write_route_summary('Warszawa', 'Ystad', self.ROUTE)
        self.assertIn(summary.FALLBACK_SUMMARY, text)
        self.assertIn('98.0 km total', text)


class DrivingTimeApiTests(APITestCase):
    def test_standard_policy(self):
        resp = self.client.post('/api/driving-time/', {'pure_driving_hours': 5.0}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['break_count'], 1)
        self.assertEqual(resp.data['total_duration_hours'], 5.75)
        self.assertFalse(resp.data['is_extended_driving'])
        self.assertEqual(len(resp.data['schedule']), 3)

    def test_extended_policy_with_reduced_rest(self):
        resp = self.client.post(
            '/api/driving-time/',
            {'pure_driving_hours': 20, 'allow_extended_driving': True, 'daily_rest_duration': 9},
            format='json',
        )
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.data['is_extended_driving'])
        self.assertEqual(resp.data['rest_count'], 1)
        self.assertEqual(resp.data['daily_rest_duration'], 9.0)
        self.assertEqual(resp.data['total_duration_hours'], 32.0)

    def test_invalid_requests(self):
        resp = self.client.post('/api/driving-time/', {'pure_driving_hours': -1}, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('pure_driving_hours', resp.data['error'])

        resp = self.client.post(
            '/api/driving-time/', {'pure_driving_hours': 5, 'daily_rest_duration': 10}, format='json',
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn('daily_rest_duration', resp.data['error'])

    def test_driving_time_above_ceiling_rejected(self):
        for hours in (MAX_PURE_DRIVING_HOURS + 1, 1e300):
            resp = self.client.post('/api/driving-time/', {'pure_driving_hours': hours}, format='json')
            self.assertEqual(resp.status_code, 400)
            self.assertIn('pure_driving_hours', resp.data['error'])


@override_settings(OPENAI_API_KEY='')
class PlanDeliveryApiTests(APITestCase):
    ROUTE = {
        'segments': [
            RouteSegment('A2', HIGHWAY, 160.0, 120),
            RouteSegment('Marszałkowska', CITY, 30.0, 60),
        ],
        'distance_by_type': distance_by_type([
            RouteSegment('A2', HIGHWAY, 160.0, 120),
            RouteSegment('Marszałkowska', CITY, 30.0, 60),
        ]),
        'total_distance_km': 190.0,
        'coordinates': [[52.2297, 21.0122], [54.352, 18.6466]],
    }

    def _plan(self, **overrides):
        body = {
            'start_location': '52.2297,21.0122',
            'end_location': '54.352,18.6466',
        }
        body.update(overrides)
        return self.client.post('/api/deliveries/plan/', body, format='json')

    @patch('logistics.views.get_route_details')
    def test_plan_from_coordinates(self, mock_route):
        mock_route.return_value = self.ROUTE
        resp = self._plan()

        self.assertEqual(resp.status_code, 200)
        self.assertAlmostEqual(resp.data['pure_driving_hours'], 3.0)
        self.assertEqual(resp.data['logistics']['break_count'], 0)
        self.assertAlmostEqual(resp.data['logistics']['total_duration_hours'], 3.0)
        self.assertEqual(resp.data['route']['total_distance_km'], 190.0)
        self.assertIn('190.0 km total', resp.data['route']['summary'])
        self.assertEqual(len(resp.data['route']['segments']), 2)
        self.assertEqual(resp.data['route']['start_location']['label'], '52.2297, 21.0122')
        self.assertEqual(resp.data['route']['end_location']['label'], '54.3520, 18.6466')

        start, end, speeds = mock_route.call_args[0]
        self.assertEqual((start['lat'], start['lng']), (52.2297, 21.0122))
        self.assertEqual(speeds, DEFAULT_SPEEDS)

        plan = DeliveryPlan.objects.get()
        self.assertEqual(resp.data['plan_id'], plan.id)
        self.assertAlmostEqual(plan.total_duration_hours, 3.0)

    @patch('logistics.views.get_route_details')
    @patch('logistics.views.geocode_location')
    def test_plan_from_addresses_with_custom_speeds(self, mock_geocode, mock_route):
        mock_geocode.side_effect = [
            {'lat': 52.2297, 'lng': 21.0122, 'label': 'Warszawa'},
            {'lat': 54.352, 'lng': 18.6466, 'label': 'Gdańsk'},
        ]
        mock_route.return_value = self.ROUTE

        resp = self._plan(
            start_location='Warszawa',
            end_location='Gdańsk',
            speeds={HIGHWAY: 40},
            allow_extended_driving=True,
        )

        self.assertEqual(resp.status_code, 200)
        # 160 km at 40 km/h plus 30 km at 30 km/h.
        self.assertAlmostEqual(resp.data['pure_driving_hours'], 5.0)
        self.assertEqual(resp.data['logistics']['break_count'], 1)
        self.assertTrue(resp.data['logistics']['is_extended_driving'])
        self.assertEqual(resp.data['route']['start_location']['label'], 'Warszawa')
        self.assertEqual(mock_geocode.call_count, 2)

    def test_invalid_speeds_rejected(self):
        resp = self._plan(speeds={CITY: 0})
        self.assertEqual(resp.status_code, 400)
        self.assertIn('speeds', resp.data['error'])
        self.assertFalse(DeliveryPlan.objects.exists())

    def test_out_of_range_coordinates_rejected(self):
        resp = self._plan(start_location='95.0,21.0')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('start_location', resp.data['error'])

    @patch('logistics.views.get_route_details')
    def test_routing_errors(self, mock_route):
        mock_route.side_effect = Timeout()
        self.assertEqual(self._plan().status_code, 504)

        rate_limited = MagicMock(status_code=429)
        mock_route.side_effect = HTTPError(response=rate_limited)
        self.assertEqual(self._plan().status_code, 429)

        server_error = MagicMock(status_code=503)
        mock_route.side_effect = HTTPError(response=server_error)
        self.assertEqual(self._plan().status_code, 502)

        mock_route.side_effect = ValueError('No drivable route found between the selected locations.')
        resp = self._plan()
        self.assertEqual(resp.status_code, 400)
        self.assertIn('No drivable route', resp.data['error'])

        self.assertFalse(DeliveryPlan.objects.exists())

    @patch('logistics.views.get_route_details')
    def test_latest_and_recent_plans(self, mock_route):
        resp = self.client.get('/api/deliveries/plans/latest/')
        self.assertEqual(resp.status_code, 404)

        mock_route.return_value = self.ROUTE
        ids = [self._plan().data['plan_id'] for _ in range(3)]

        resp = self.client.get('/api/deliveries/plans/latest/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['plan_id'], ids[-1])

        resp = self.client.get('/api/deliveries/plans/recent/?limit=2')
        self.assertEqual([p['plan_id'] for p in resp.data['plans']], [ids[2], ids[1]])

        resp = self.client.get('/api/deliveries/plans/recent/?limit=abc')
        self.assertEqual(len(resp.data['plans']), 3)


class CostApiTests(APITestCase):
    def _estimate(self, **overrides):
        body = {'distance_km': 1000, 'freight_value': 5000}
        body.update(overrides)
        return self.client.post('/api/costs/estimate/', body, format='json')

    def test_estimate_without_saving(self):
        resp = self._estimate()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['costs']['net_profit'], 1822.5)
        self.assertEqual(resp.data['costs']['total_ops_cost'], 2750.0)
        self.assertNotIn('estimate_id', resp.data)
        self.assertFalse(CostEstimate.objects.exists())

    def test_estimate_with_custom_settings(self):
        resp = self._estimate(fuel_price=6.0, consumption=30, toll_rate=0, maintenance_rate=0, cit_rate=0)
        self.assertEqual(resp.data['costs']['total_ops_cost'], 1800.0)
        self.assertEqual(resp.data['costs']['net_profit'], 3200.0)

    def test_invalid_estimate(self):
        self.assertEqual(self._estimate(distance_km=-5).status_code, 400)
        self.assertEqual(self._estimate(cit_rate=1.5).status_code, 400)
        self.assertEqual(self._estimate(is_eur=True, exchange_rate=0).status_code, 400)

    def test_history_keeps_newest_entries(self):
        for i in range(12):
            resp = self._estimate(save_to_history=True, start_location=f'Start {i}', truck_plate='WX 12345')
            self.assertIn('estimate_id', resp.data)

        resp = self.client.get('/api/costs/history/')
        history = resp.data['history']
        self.assertEqual(len(history), CostEstimate.HISTORY_LIMIT)
        self.assertEqual(history[0]['start_location'], 'Start 11')
        self.assertEqual(history[0]['end_location'], 'Unknown')
        self.assertEqual(history[0]['revenue_pln'], 5000.0)

        resp = self.client.delete('/api/costs/history/')
        self.assertEqual(resp.status_code, 204)
        self.assertFalse(CostEstimate.objects.exists())

    def test_empty_quote_is_not_saved(self):
        self._estimate(freight_value=0, save_to_history=True)
        self.assertFalse(CostEstimate.objects.exists())


class TruckApiTests(APITestCase):
    def _create(self, **overrides):
        body = {
            'name': 'Volvo FH',
            'plate': 'WX 12345',
            'power': 500,
            'consumption': 30,
            'toll_rate': 0,
            'maintenance_rate': 0,
        }
        body.update(overrides)
        return self.client.post('/api/trucks/', body, format='json')

    def test_create_and_list(self):
        resp = self._create()
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data['name'], 'Volvo FH')
        self._create(name='DAF XF', plate='')

        resp = self.client.get('/api/trucks/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([t['name'] for t in resp.data['trucks']], ['DAF XF', 'Volvo FH'])
        self.assertEqual(str(TruckProfile.objects.get(name='Volvo FH')), 'Volvo FH (WX 12345)')
        self.assertEqual(str(TruckProfile.objects.get(name='DAF XF')), 'DAF XF')

    def test_negative_rates_rejected(self):
        resp = self._create(consumption=-1)
        self.assertEqual(resp.status_code, 400)
        self.assertIn('consumption', resp.data['error'])
        self.assertEqual(self._create(name='').status_code, 400)

    def test_delete_truck(self):
        truck_id = self._create().data['id']
        self.assertEqual(self.client.delete(f'/api/trucks/{truck_id}/').status_code, 204)
        resp = self.client.delete(f'/api/trucks/{truck_id}/')
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.data['error'], 'Truck profile not found.')

    def test_estimate_uses_selected_truck(self):
        truck_id = self._create().data['id']
        resp = self.client.post('/api/costs/estimate/', {
            'distance_km': 1000,
            'freight_value': 5000,
            'consumption': 99,
            'truck_name': 'Ignored',
            'truck_id': truck_id,
            'save_to_history': True,
        }, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['costs']['total_ops_cost'], 1500.0)
        self.assertEqual(resp.data['costs']['net_profit'], 2835.0)

        saved = CostEstimate.objects.get()
        self.assertEqual(saved.truck_name, 'Volvo FH')
        self.assertEqual(saved.truck_plate, 'WX 12345')

    def test_estimate_with_unknown_truck(self):
        resp = self.client.post('/api/costs/estimate/', {
            'distance_km': 1000, 'freight_value': 5000, 'truck_id': 999,
        }, format='json')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('truck_id', resp.data['error'])


class ReverseGeocodeApiTests(APITestCase):
    @patch('logistics.views.reverse_geocode')
    def test_reverse_geocode(self, mock_reverse):
        mock_reverse.return_value = 'Marszałkowska, Warszawa'
        resp = self.client.get('/api/locations/reverse/', {'lat': 52.23, 'lng': 21.01})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['label'], 'Marszałkowska, Warszawa')

    @patch('logistics.views.reverse_geocode')
    def test_provider_timeout(self, mock_reverse):
        mock_reverse.side_effect = Timeout()
        resp = self.client.get('/api/locations/reverse/', {'lat': 52.23, 'lng': 21.01})
        self.assertEqual(resp.status_code, 504)

    def test_missing_coordinates(self):
        resp = self.client.get('/api/locations/reverse/', {'lat': 52.23})
        self.assertEqual(resp.status_code, 400)


class DeliveryPlanModelTests(TestCase):
    def test_str(self):
        plan = DeliveryPlan.objects.create(
            start_location='Warszawa',
            end_location='Gdańsk',
            total_distance_km=340.0,
            response_payload={},
        )
        self.assertIn('Warszawa -> Gdańsk (340.0 km', str(plan))
