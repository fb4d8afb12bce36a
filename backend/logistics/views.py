"""Views for the logistics API."""

import logging

from requests import HTTPError, RequestException, Timeout
from rest_framework import serializers as drf_serializers
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from .costs import calculate_transport_costs, cost_breakdown_to_dict
from .driver_rules import DriverPolicy, InvalidInput, logistics_time_to_dict, plan_driving_schedule
from .models import CostEstimate, DeliveryPlan, TruckProfile
from .road_types import pure_driving_hours, segments_to_dict
from .serializers import (
    CostEstimateRequestSerializer,
    DeliveryPlanRequestSerializer,
    DrivingTimeRequestSerializer,
    ReverseGeocodeRequestSerializer,
    TruckProfileSerializer,
    parse_coordinate_pair,
)
from .services.osrm import geocode_location, get_route_details, reverse_geocode
from .services.summary import write_route_summary

logger = logging.getLogger(__name__)


def _validation_error(exc):
    return Response({'error': exc.detail}, status=status.HTTP_400_BAD_REQUEST)


def _provider_error_response(exc, provider='Routing'):
    """Translate a failed external lookup into an API response."""
    if isinstance(exc, Timeout):
        return Response(
            {'error': f'{provider} timed out while contacting the provider. Please retry in a moment.'},
            status=status.HTTP_504_GATEWAY_TIMEOUT,
        )
    if isinstance(exc, HTTPError) and exc.response is not None:
        status_code = exc.response.status_code
        if status_code == 429:
            return Response(
                {'error': f'{provider} rate limit reached. Please retry in 1-2 minutes.'},
                status=status.HTTP_429_TOO_MANY_REQUESTS,
            )
        return Response(
            {'error': f'{provider} request failed with status {status_code}.'},
            status=status.HTTP_502_BAD_GATEWAY,
        )
    return Response(
        {'error': f'{provider} service request failed. Please try again.'},
        status=status.HTTP_502_BAD_GATEWAY,
    )


def _with_metadata(plan):
    return {
        **(plan.response_payload or {}),
        'plan_id': plan.id,
        'created_at': plan.created_at.isoformat(),
    }


class PlanDeliveryView(APIView):
    """
    POST /api/deliveries/plan/
    Body: { start_location, end_location, allow_extended_driving, daily_rest_duration, speeds }
    """

    def post(self, request):
        serializer = DeliveryPlanRequestSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except drf_serializers.ValidationError as exc:
            return _validation_error(exc)
        validated = serializer.validated_data
        start_text = validated['start_location']
        end_text = validated['end_location']
        speeds = validated['speeds']
        policy = DriverPolicy.for_options(
            allow_extended_driving=validated['allow_extended_driving'],
            daily_rest_duration=validated['daily_rest_duration'],
        )

        # ── Locations & route ─────────────────────────────────
        try:
            start = parse_coordinate_pair(start_text, 'start_location') or geocode_location(start_text)
            end = parse_coordinate_pair(end_text, 'end_location') or geocode_location(end_text)
            route = get_route_details(start, end, speeds)
        except RequestException as exc:
            logger.warning('Routing lookup failed for %s -> %s: %s', start_text, end_text, exc)
            return _provider_error_response(exc)
        except ValueError as exc:
            return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        if not route['segments']:
            return Response(
                {'error': 'Routing service returned a route without any road segments.'},
                status=status.HTTP_502_BAD_GATEWAY,
            )

        # ── Driving time ──────────────────────────────────────
        driving_hours = pure_driving_hours(route['segments'], speeds)
        try:
            logistics = plan_driving_schedule(driving_hours, policy)
        except InvalidInput as exc:
            return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        summary = write_route_summary(start_text, end_text, route)

        response_payload = {
            'route': {
                'start_location': {**start, 'query': start_text},
                'end_location': {**end, 'query': end_text},
                'total_distance_km': route['total_distance_km'],
                'distance_by_type': route['distance_by_type'],
                'segments': segments_to_dict(route['segments']),
                'coordinates': route['coordinates'],
                'summary': summary,
            },
            'speeds': speeds,
            'pure_driving_hours': round(driving_hours, 4),
            'logistics': logistics_time_to_dict(logistics),
        }

        plan = DeliveryPlan.objects.create(
            start_location=start_text,
            end_location=end_text,
            allow_extended_driving=validated['allow_extended_driving'],
            daily_rest_duration=validated['daily_rest_duration'],
            total_distance_km=route['total_distance_km'],
            pure_driving_hours=driving_hours,
            total_duration_hours=logistics.total_duration_hours,
            response_payload=response_payload,
        )
        return Response(_with_metadata(plan))


class DeliveryPlanLatestView(APIView):
    """GET /api/deliveries/plans/latest/"""

    def get(self, request):
        plan = DeliveryPlan.objects.first()
        if not plan:
            return Response(
                {'error': 'No saved delivery plans yet.'},
                status=status.HTTP_404_NOT_FOUND,
            )
        return Response(_with_metadata(plan))


class DeliveryPlanRecentView(APIView):
    """GET /api/deliveries/plans/recent/?limit=5"""

    def get(self, request):
        limit_raw = request.query_params.get('limit', '5')
        try:
            limit = max(1, min(20, int(limit_raw)))
        except (TypeError, ValueError):
            limit = 5

        plans = DeliveryPlan.objects.all()[:limit]
        return Response({'plans': [_with_metadata(plan) for plan in plans]})


class DrivingTimeView(APIView):
    """
    POST /api/driving-time/
    Body: { pure_driving_hours, allow_extended_driving, daily_rest_duration }
    """

    def post(self, request):
        serializer = DrivingTimeRequestSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except drf_serializers.ValidationError as exc:
            return _validation_error(exc)
        validated = serializer.validated_data
        policy = DriverPolicy.for_options(
            allow_extended_driving=validated['allow_extended_driving'],
            daily_rest_duration=validated['daily_rest_duration'],
        )
        try:
            logistics = plan_driving_schedule(validated['pure_driving_hours'], policy)
        except InvalidInput as exc:
            return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(logistics_time_to_dict(logistics))


class CostEstimateView(APIView):
    """
    POST /api/costs/estimate/
    Body: { distance_km, freight_value, is_rate_per_km, is_eur, exchange_rate, ...cost settings }
    """

    def post(self, request):
        serializer = CostEstimateRequestSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except drf_serializers.ValidationError as exc:
            return _validation_error(exc)
        validated = serializer.validated_data

        breakdown = calculate_transport_costs(
            distance_km=validated['distance_km'],
            freight_value=validated['freight_value'],
            is_rate_per_km=validated['is_rate_per_km'],
            is_eur=validated['is_eur'],
            exchange_rate=validated['exchange_rate'],
            settings=serializer.cost_settings(),
        )
        payload = {'costs': cost_breakdown_to_dict(breakdown)}

        if validated['save_to_history'] and validated['distance_km'] > 0 and validated['freight_value'] > 0:
            estimate = CostEstimate.objects.create(
                start_location=validated['start_location'],
                end_location=validated['end_location'],
                route_date=validated['route_date'],
                distance_km=validated['distance_km'],
                revenue_pln=breakdown.revenue_pln,
                net_profit=breakdown.net_profit,
                is_eur=validated['is_eur'],
                truck_name=validated['truck_name'],
                truck_plate=validated['truck_plate'],
            )
            CostEstimate.prune_history()
            payload['estimate_id'] = estimate.id

        return Response(payload)


class CostHistoryView(APIView):
    """GET / DELETE /api/costs/history/"""

    def get(self, request):
        return Response({
            'history': [
                {
                    'id': item.id,
                    'start_location': item.start_location or 'Unknown',
                    'end_location': item.end_location or 'Unknown',
                    'route_date': item.route_date.isoformat() if item.route_date else None,
                    'distance_km': item.distance_km,
                    'revenue_pln': round(item.revenue_pln, 2),
                    'net_profit': round(item.net_profit, 2),
                    'is_eur': item.is_eur,
                    'truck_name': item.truck_name,
                    'truck_plate': item.truck_plate,
                    'created_at': item.created_at.isoformat(),
                }
                for item in CostEstimate.objects.all()
            ]
        })

    def delete(self, request):
        CostEstimate.objects.all().delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class TruckListView(APIView):
    """GET / POST /api/trucks/"""

    def get(self, request):
        return Response({'trucks': TruckProfileSerializer(TruckProfile.objects.all(), many=True).data})

    def post(self, request):
        serializer = TruckProfileSerializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except drf_serializers.ValidationError as exc:
            return _validation_error(exc)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class TruckDetailView(APIView):
    """DELETE /api/trucks/<id>/"""

    def delete(self, request, pk):
        deleted, _ = TruckProfile.objects.filter(pk=pk).delete()
        if not deleted:
            return Response({'error': 'Truck profile not found.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ReverseGeocodeView(APIView):
    """GET /api/locations/reverse/?lat=52.23&lng=21.01"""

    def get(self, request):
        serializer = ReverseGeocodeRequestSerializer(data=request.query_params)
        try:
            serializer.is_valid(raise_exception=True)
        except drf_serializers.ValidationError as exc:
            return _validation_error(exc)
        lat = serializer.validated_data['lat']
        lng = serializer.validated_data['lng']

        try:
            label = reverse_geocode(lat, lng)
        except RequestException as exc:
            logger.warning('Reverse geocoding failed for %s,%s: %s', lat, lng, exc)
            return _provider_error_response(exc, provider='Geocoding')
        return Response({'lat': lat, 'lng': lng, 'label': label})
