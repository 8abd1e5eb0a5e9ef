"""Date resolution policy for add-ons.

Every add-on declares how its pricing window is derived:

``inherit_parent``
    the guest picks one day inside the accommodation stay; the window is that
    day plus one night.
``custom``
    a configured start/end window, optionally narrowed by the guest.
``free``
    an independent range chosen by the guest.

A window that cannot be resolved is reported as ``None`` ("missing input"),
never as an error: such nodes are simply not sent to the oracle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cartpricing.domain.model import DatePolicy, DateRange, InvalidDateRangeError

if TYPE_CHECKING:
    from datetime import date

    from cartpricing.domain.model import AddonSpec


def resolve_addon_dates(
    spec: AddonSpec,
    *,
    selected_date: date | None,
    dates: DateRange | None,
    accommodation_dates: DateRange | None,
) -> DateRange | None:
    """Return the effective pricing window of an add-on, or ``None`` if inputs are missing."""

    if spec.date_policy is DatePolicy.INHERIT_PARENT:
        if accommodation_dates is None:
            return None
        day = selected_date or accommodation_dates.check_in
        if not accommodation_dates.contains_day(day):
            return None
        return DateRange.single_day(day)

    if spec.date_policy is DatePolicy.CUSTOM:
        window = spec.custom_window
        if window is None:
            return None
        if dates is None:
            return window
        if not dates.within(window):
            return None
        return dates

    return dates


def check_addon_dates(spec: AddonSpec, dates: DateRange) -> None:
    """Reject user-chosen ranges the add-on's policy does not allow."""

    if spec.date_policy is DatePolicy.INHERIT_PARENT:
        raise InvalidDateRangeError(
            f"{spec.addon_id} inherits the stay dates; choose a single day instead"
        )
    if spec.date_policy is DatePolicy.CUSTOM:
        window = spec.custom_window
        if window is None or not dates.within(window):
            raise InvalidDateRangeError(
                f"{spec.addon_id}: {dates.check_in}..{dates.check_out} exceeds the allowed window"
            )


def check_addon_day(
    spec: AddonSpec,
    day: date,
    accommodation_dates: DateRange | None,
) -> None:
    if spec.date_policy is not DatePolicy.INHERIT_PARENT:
        raise InvalidDateRangeError(f"{spec.addon_id} does not use a single service day")
    if accommodation_dates is not None and not accommodation_dates.contains_day(day):
        raise InvalidDateRangeError(f"{day} is outside the stay {accommodation_dates}")


def default_addon_dates(
    spec: AddonSpec,
    accommodation_dates: DateRange | None,
) -> tuple[date | None, DateRange | None]:
    """Initial ``(selected_date, dates)`` for a newly selected add-on."""

    if spec.date_policy is DatePolicy.INHERIT_PARENT:
        if accommodation_dates is None:
            return None, None
        return accommodation_dates.check_in, None
    if spec.date_policy is DatePolicy.CUSTOM:
        return None, spec.custom_window
    return None, None
