"""
Narrative route summaries written by a language model.

The model only ever contributes prose. Distances shown to the user always
come from the routing data, so nothing in the model's answer is parsed back.
"""

import logging

from django.conf import settings
from openai import OpenAI, OpenAIError

from ..road_types import FERRY, LABELS

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = 'Technical analysis (AI summary unavailable).'
MAX_SUMMARY_CHARS = 400

SYSTEM_PROMPT = (
    'You are a road freight logistics expert. Write a concise summary of a '
    'truck route in one or two sentences. Mention the main roads and any '
    'ferry crossing. Never change the numbers you are given.'
)


def _build_prompt(start: str, end: str, route: dict) -> str:
    lines = [
        f'Truck route from "{start}" to "{end}".',
        'Exact figures from the navigation system (do not change them):',
        f"- Total distance: {route['total_distance_km']} km",
    ]
    for item in route['distance_by_type']:
        lines.append(f"- {LABELS[item['road_type']]}: {item['distance_km']} km")

    main_roads = sorted(route['segments'], key=lambda s: s.distance_km, reverse=True)[:5]
    if main_roads:
        lines.append('Longest stretches: ' + ', '.join(s.name for s in main_roads) + '.')
    if any(item['road_type'] == FERRY for item in route['distance_by_type']):
        lines.append('The route includes a ferry crossing; mention it.')
    return '\n'.join(lines)


def technical_summary(route: dict) -> str:
    parts = [f"{item['label']}: {item['distance_km']} km" for item in route['distance_by_type']]
    return f"{route['total_distance_km']} km total" + (f" ({'; '.join(parts)})." if parts else '.')


def write_route_summary(start: str, end: str, route: dict) -> str:
    api_key = getattr(settings, 'OPENAI_API_KEY', '')
    if not api_key:
        return technical_summary(route)

    try:
        client = OpenAI(api_key=api_key, timeout=getattr(settings, 'OPENAI_TIMEOUT_SECONDS', 20))
        completion = client.chat.completions.create(
            model=getattr(settings, 'OPENAI_MODEL', 'gpt-4o-mini'),
            messages=[
                {'role': 'system', 'content': SYSTEM_PROMPT},
                {'role': 'user', 'content': _build_prompt(start, end, route)},
            ],
            temperature=0.3,
        )
    except OpenAIError as exc:
        logger.warning('Route summary generation failed: %s', exc)
        return f'{technical_summary(route)} {FALLBACK_SUMMARY}'

    text = (completion.choices[0].message.content or '').strip()
    if not text:
        return technical_summary(route)
    if len(text) > MAX_SUMMARY_CHARS:
        text = text[:MAX_SUMMARY_CHARS].rstrip() + '...'
    return text
