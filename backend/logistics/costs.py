"""
Transport cost and profitability arithmetic.
All amounts are PLN unless the freight is quoted in EUR, in which case
revenue is converted with the given exchange rate before costs are applied.
"""

from dataclasses import asdict, dataclass
from typing import Optional

DEFAULT_EXCHANGE_RATE = 4.30    # PLN per EUR


@dataclass(frozen=True)
class CostSettings:
    fuel_price: float = 5.00            # PLN per litre
    consumption: float = 34.0           # litres per 100 km
    toll_rate: float = 0.40             # PLN per km
    maintenance_rate: float = 0.65      # PLN per km
    cit_rate: float = 0.19              # corporate income tax


@dataclass(frozen=True)
class CostBreakdown:
    revenue_pln: float
    fuel_cost: float
    toll_cost: float
    maintenance_cost: float
    total_ops_cost: float
    gross_profit: float
    cit_cost: float
    net_profit: float
    net_per_km: float
    break_even: float


def calculate_transport_costs(
    distance_km: float,
    freight_value: float,
    is_rate_per_km: bool = False,
    is_eur: bool = False,
    exchange_rate: float = DEFAULT_EXCHANGE_RATE,
    settings: Optional[CostSettings] = None,
) -> CostBreakdown:
    """
    freight_value is either the total freight amount or, with is_rate_per_km,
    the rate charged per kilometre.
    """
    settings = settings or CostSettings()

    for name, value in (
        ('distance_km', distance_km),
        ('freight_value', freight_value),
        ('exchange_rate', exchange_rate),
        *asdict(settings).items(),
    ):
        if value < 0:
            raise ValueError(f'{name} cannot be negative.')

    revenue = distance_km * freight_value if is_rate_per_km else freight_value
    revenue_pln = revenue * exchange_rate if is_eur else revenue

    fuel_cost = distance_km / 100.0 * settings.consumption * settings.fuel_price
    toll_cost = distance_km * settings.toll_rate
    maintenance_cost = distance_km * settings.maintenance_rate
    total_ops_cost = fuel_cost + toll_cost + maintenance_cost

    gross_profit = revenue_pln - total_ops_cost
    # CIT is only due on a profit.
    cit_cost = gross_profit * settings.cit_rate if gross_profit > 0 else 0.0
    net_profit = gross_profit - cit_cost

    return CostBreakdown(
        revenue_pln=revenue_pln,
        fuel_cost=fuel_cost,
        toll_cost=toll_cost,
        maintenance_cost=maintenance_cost,
        total_ops_cost=total_ops_cost,
        gross_profit=gross_profit,
        cit_cost=cit_cost,
        net_profit=net_profit,
        net_per_km=net_profit / distance_km if distance_km > 0 else 0.0,
        break_even=total_ops_cost,
    )


def cost_breakdown_to_dict(breakdown: CostBreakdown) -> dict:
    return {key: round(value, 2) for key, value in asdict(breakdown).items()}
