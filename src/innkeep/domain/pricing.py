"""Pricing engine - nightly rate pipeline and stay quotes.

Per night, in this order:
1. Base price: inventory price_override, else the room type's base price
2. Rate plan modifier
3. Best seasonal rate modifier (at most one)
4. Dynamic modifiers: percentage sum, then fixed sum
5. Nightly rate adjuster (strategy, identity by default)
6. Clamp at zero and round to cents

The stay total adds extra-occupant fees, a service fee, an injected
discount and tax on (subtotal + fees - discount).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Protocol

from innkeep.domain.catalog import RoomTypeCatalog
from innkeep.domain.dynamic_pricing import DynamicModifierCalculator, DynamicModifiers
from innkeep.domain.models import (
    HUNDRED,
    ZERO,
    InventoryDay,
    RatePlan,
    RoomType,
    iter_nights,
    money,
    nights_between,
)
from innkeep.domain.rate_plans import RatePlanFailure, RatePlanResolver
from innkeep.domain.results import Failure
from innkeep.domain.seasonal import SeasonalRateResolver
from innkeep.infra.settings import PricingSettings


class PricingFailure(str, Enum):
    INVALID_DATE_RANGE = "invalid_date_range"
    INVALID_OCCUPANCY = "invalid_occupancy"
    ROOM_TYPE_NOT_FOUND = "room_type_not_found"
    RATE_PLAN_NOT_FOUND = "rate_plan_not_found"
    RATE_PLAN_INACTIVE = "rate_plan_inactive"
    RATE_PLAN_NOT_APPLICABLE = "rate_plan_not_applicable"
    STAY_LENGTH_VIOLATION = "stay_length_violation"


_RATE_PLAN_FAILURES = {
    RatePlanFailure.NOT_FOUND: PricingFailure.RATE_PLAN_NOT_FOUND,
    RatePlanFailure.INACTIVE: PricingFailure.RATE_PLAN_INACTIVE,
    RatePlanFailure.NOT_APPLICABLE: PricingFailure.RATE_PLAN_NOT_APPLICABLE,
}


@dataclass(frozen=True)
class NightlyRate:
    """One night of a quote, with every pipeline stage kept for audits."""

    date: date
    base_price: Decimal
    after_rate_plan: Decimal
    after_seasonal: Decimal
    seasonal_rate_id: int | None
    dynamic_percentage: Decimal
    dynamic_fixed: Decimal
    rate: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "base_price": str(self.base_price),
            "after_rate_plan": str(self.after_rate_plan),
            "after_seasonal": str(self.after_seasonal),
            "seasonal_rate_id": self.seasonal_rate_id,
            "dynamic_percentage": str(self.dynamic_percentage),
            "dynamic_fixed": str(self.dynamic_fixed),
            "rate": str(self.rate),
        }


@dataclass(frozen=True)
class Quote:
    room_type_id: int
    rate_plan_id: int
    check_in: date
    check_out: date
    adults: int
    children: int
    subtotal: Decimal
    extra_person_fee: Decimal
    service_fee: Decimal
    fees: Decimal
    discount: Decimal
    taxes: Decimal
    total: Decimal
    currency: str
    exchange_rate: Decimal
    nightly_rates: tuple[NightlyRate, ...] = field(default_factory=tuple)

    @property
    def nights(self) -> int:
        return len(self.nightly_rates)

    @property
    def average_nightly_rate(self) -> Decimal:
        if not self.nightly_rates:
            return ZERO
        return money(self.subtotal / self.nights)

    def to_dict(self) -> dict[str, Any]:
        return {
            "room_type_id": self.room_type_id,
            "rate_plan_id": self.rate_plan_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "adults": self.adults,
            "children": self.children,
            "nights": self.nights,
            "subtotal": str(self.subtotal),
            "extra_person_fee": str(self.extra_person_fee),
            "service_fee": str(self.service_fee),
            "fees": str(self.fees),
            "discount": str(self.discount),
            "taxes": str(self.taxes),
            "total": str(self.total),
            "currency": self.currency,
            "exchange_rate": str(self.exchange_rate),
            "average_nightly_rate": str(self.average_nightly_rate),
            "nightly_rates": [n.to_dict() for n in self.nightly_rates],
        }


@dataclass(frozen=True)
class DiscountContext:
    room_type_id: int
    rate_plan: RatePlan
    check_in: date
    check_out: date
    nights: int
    adults: int
    children: int
    subtotal: Decimal
    fees: Decimal


class DiscountPolicy(Protocol):
    def compute(self, context: DiscountContext) -> Decimal: ...


class NoDiscount:
    def compute(self, context: DiscountContext) -> Decimal:
        return ZERO


class NightlyRateAdjuster(Protocol):
    def adjust(self, room_type_id: int, rate_plan: RatePlan, night: date, price: Decimal) -> Decimal: ...


class NoAdjustment:
    def adjust(self, room_type_id: int, rate_plan: RatePlan, night: date, price: Decimal) -> Decimal:
        return price


def price_night(
    *,
    night: date,
    base_price: Decimal,
    rate_plan: RatePlan,
    seasonal: Any | None,
    dynamic: DynamicModifiers,
    adjust: Callable[[Decimal], Decimal] = lambda p: p,
) -> NightlyRate:
    """Run the fixed nightly pipeline for one night."""
    after_plan = rate_plan.modifier.apply(base_price)
    after_seasonal = seasonal.modifier.apply(after_plan) if seasonal is not None else after_plan
    price = adjust(dynamic.apply(after_seasonal))
    return NightlyRate(
        date=night,
        base_price=money(base_price),
        after_rate_plan=money(after_plan),
        after_seasonal=money(after_seasonal),
        seasonal_rate_id=seasonal.id if seasonal is not None else None,
        dynamic_percentage=dynamic.percentage,
        dynamic_fixed=dynamic.fixed,
        rate=money(max(ZERO, price)),
    )


def extra_person_fee(
    room_type: RoomType,
    settings: PricingSettings,
    *,
    adults: int,
    children: int,
    nights: int,
) -> Decimal:
    """Extra adults beyond base occupancy plus every child, per night.

    Room-type prices win when set above zero; settings are the fallback.
    """
    adult_charge = room_type.extra_adult_price if room_type.extra_adult_price > 0 else settings.extra_adult_charge
    child_charge = room_type.extra_child_price if room_type.extra_child_price > 0 else settings.extra_child_charge
    extra_adults = max(0, adults - room_type.base_occupancy)
    return money((extra_adults * adult_charge + children * child_charge) * nights)


class PricingEngine:
    def __init__(
        self,
        *,
        catalog: RoomTypeCatalog,
        rate_plans: RatePlanResolver,
        seasonal: SeasonalRateResolver,
        dynamic: DynamicModifierCalculator,
        inventory: Callable[[int, date, date], list[InventoryDay]],
        settings: Callable[[], PricingSettings],
        discount_policy: DiscountPolicy | None = None,
        nightly_adjuster: NightlyRateAdjuster | None = None,
    ) -> None:
        self._catalog = catalog
        self._rate_plans = rate_plans
        self._seasonal = seasonal
        self._dynamic = dynamic
        self._inventory = inventory
        self._settings = settings
        self._discount_policy = discount_policy or NoDiscount()
        self._nightly_adjuster = nightly_adjuster or NoAdjustment()

    def calculate_stay(
        self,
        room_type_id: int,
        check_in: date,
        check_out: date,
        adults: int,
        children: int = 0,
        rate_plan_id: int | None = None,
        guest_segment: str | None = None,
    ) -> Quote | Failure[PricingFailure]:
        """Price a stay.

        Returns:
            Quote with totals and the per-night breakdown, or a Failure.
        """
        if check_out <= check_in:
            return Failure(
                PricingFailure.INVALID_DATE_RANGE,
                {"check_in": check_in, "check_out": check_out},
            )
        if adults < 1 or children < 0:
            return Failure(
                PricingFailure.INVALID_OCCUPANCY,
                {"adults": adults, "children": children},
            )

        room_type = self._catalog.get(room_type_id)
        if room_type is None:
            return Failure(PricingFailure.ROOM_TYPE_NOT_FOUND, {"room_type_id": room_type_id})

        plan = self._rate_plans.resolve(room_type_id, rate_plan_id, guest_segment, on=check_in)
        if isinstance(plan, Failure):
            return Failure(_RATE_PLAN_FAILURES[plan.reason], plan.meta)

        nights = nights_between(check_in, check_out)
        if not plan.allows_stay_length(nights):
            return Failure(
                PricingFailure.STAY_LENGTH_VIOLATION,
                {
                    "rate_plan_id": plan.id,
                    "nights": nights,
                    "min_stay": plan.min_stay,
                    "max_stay": plan.max_stay,
                },
            )

        nightly = self.nightly_rates(room_type, plan, check_in, check_out)
        settings = self._settings()

        subtotal = money(sum((n.rate for n in nightly), ZERO))
        extra = extra_person_fee(room_type, settings, adults=adults, children=children, nights=nights)
        service = money(subtotal * settings.service_fee_rate / HUNDRED)
        fees = money(extra + service)

        discount = self._discount_policy.compute(
            DiscountContext(
                room_type_id=room_type_id,
                rate_plan=plan,
                check_in=check_in,
                check_out=check_out,
                nights=nights,
                adults=adults,
                children=children,
                subtotal=subtotal,
                fees=fees,
            )
        )
        discount = max(ZERO, money(discount))

        taxable = max(ZERO, subtotal + fees - discount)
        taxes = money(taxable * settings.tax_rate / HUNDRED)
        total = money(subtotal + fees + taxes - discount)

        return Quote(
            room_type_id=room_type_id,
            rate_plan_id=plan.id,
            check_in=check_in,
            check_out=check_out,
            adults=adults,
            children=children,
            subtotal=subtotal,
            extra_person_fee=extra,
            service_fee=service,
            fees=fees,
            discount=discount,
            taxes=taxes,
            total=total,
            currency=settings.currency,
            exchange_rate=settings.exchange_rate,
            nightly_rates=tuple(nightly),
        )

    def nightly_rates(
        self,
        room_type: RoomType,
        plan: RatePlan,
        check_in: date,
        check_out: date,
    ) -> list[NightlyRate]:
        days = {d.date: d for d in self._inventory(room_type.id, check_in, check_out)}
        seasonal_rates = self._seasonal.for_range(room_type.id, check_in, check_out)

        rates: list[NightlyRate] = []
        for night in iter_nights(check_in, check_out):
            day = days.get(night)
            base = day.price_override if day is not None and day.price_override is not None else room_type.base_price
            occupancy = day.occupancy_percent if day is not None else ZERO
            rates.append(
                price_night(
                    night=night,
                    base_price=base,
                    rate_plan=plan,
                    seasonal=self._seasonal.applicable_on(
                        room_type.id, plan.id, night, preloaded=seasonal_rates
                    ),
                    dynamic=self._dynamic.modifiers_for(room_type.id, night, occupancy),
                    adjust=lambda p, n=night: self._nightly_adjuster.adjust(room_type.id, plan, n, p),
                )
            )
        return rates
