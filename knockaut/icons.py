"""Derive display icons from snapshot objects and variable profiles."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
import logging
from typing import Any

from pydantic import ValidationError

from .codecs.models import (
    ProfileAssociation,
    SnapshotObject,
    VariableData,
    VariableProfile,
)
from .const import (
    ADAPTIVE_ICONS,
    ICON_BASE,
    OBJECT_TYPE_ICONS,
    VARIABLE_FALLBACK_ICON,
    VENDOR_ICON_PATH_FMT,
    VENDOR_ICON_PREFIX,
    ObjectType,
    VariableType,
)
from .util import coerce_value, float_or_none, is_numeric_identifier

_LOGGER = logging.getLogger(__name__)

IconRef = SnapshotObject | Mapping[str, Any] | int | str


@dataclass(frozen=True, slots=True)
class IconContext:
    """Read-only lookups shared by the icon strategies."""

    lookup_object: Callable[[int], SnapshotObject | None]
    lookup_profile: Callable[[str], VariableProfile | None]
    adaptive_icons: Mapping[str, Sequence[int]]
    strict: bool = False


IconStrategy = Callable[[SnapshotObject, IconContext], str | None]


# ----------------- Adaptive icons -----------------


def adaptive_percentage(
    value: Any, kind: VariableType, min_value: float, max_value: float
) -> float | None:
    """Return the position of ``value`` within ``[min_value, max_value]`` in percent.

    Booleans map to 0 or 100. ``None`` is returned for non numeric kinds and
    for a degenerate range.
    """
    if kind is VariableType.BOOLEAN:
        return 100.0 if coerce_value(value, kind) else 0.0
    if kind not in (VariableType.INTEGER, VariableType.FLOAT):
        return None
    if max_value <= min_value:
        return None
    current = float_or_none(value)
    if current is None:
        return None
    return (current - min_value) / (max_value - min_value) * 100


def nearest_bucket(percentage: float, buckets: Sequence[int]) -> int | None:
    """Return the bucket closest to ``percentage``; ties keep the first one."""

    best: int | None = None
    best_distance = 0.0
    for bucket in buckets:
        distance = abs(bucket - percentage)
        if best is None or distance < best_distance:
            best = bucket
            best_distance = distance
    return best


def adaptive_icon(
    icon: str,
    variable: VariableData,
    profile: VariableProfile,
    adaptive_icons: Mapping[str, Sequence[int]],
) -> str:
    """Append the nearest adaptive suffix to ``icon`` when it is adaptive."""

    buckets = adaptive_icons.get(icon)
    if not buckets:
        return icon
    percentage = adaptive_percentage(
        variable.value, variable.variable_type, profile.min_value, profile.max_value
    )
    if percentage is None:
        return icon
    bucket = nearest_bucket(percentage, buckets)
    if bucket is None:
        return icon
    return f"{icon}-{bucket}"


# ----------------- Associations -----------------


def pick_association(
    profile: VariableProfile, kind: VariableType, value: Any
) -> ProfileAssociation | None:
    """Return the association matching ``value``.

    Float variables use the numerically nearest association; every other kind
    needs an exact match after coercion.
    """
    if kind is VariableType.FLOAT:
        current = float_or_none(value)
        if current is None:
            return None
        best: ProfileAssociation | None = None
        best_distance = 0.0
        for association in profile.associations:
            candidate = float_or_none(association.value)
            if candidate is None:
                continue
            distance = abs(candidate - current)
            if best is None or distance < best_distance:
                best = association
                best_distance = distance
        return best

    current = coerce_value(value, kind)
    for association in profile.associations:
        if coerce_value(association.value, kind) == current:
            return association
    return None


def variable_profile(
    variable: VariableData, lookup_profile: Callable[[str], VariableProfile | None]
) -> VariableProfile | None:
    """Return the custom profile when set and known, else the declared one."""

    for name in (variable.custom_profile, variable.profile):
        if not name:
            continue
        profile = lookup_profile(name)
        if profile is not None:
            return profile
    return None


# ----------------- Strategies -----------------


def own_icon(obj: SnapshotObject, ctx: IconContext) -> str | None:
    """Use the icon declared on the object itself."""

    return obj.icon or None


def linked_icon(obj: SnapshotObject, ctx: IconContext) -> str | None:
    """Use the declared icon of a link target (one hop only)."""

    target_id = obj.link_target()
    if target_id is None:
        return None
    target = ctx.lookup_object(target_id)
    if target is None:
        return None
    return target.icon or None


def type_icon(obj: SnapshotObject, ctx: IconContext) -> str | None:
    """Use the generic icon of the object type unless running strict."""

    if ctx.strict:
        return None
    return OBJECT_TYPE_ICONS.get(obj.type)


def profile_icon(obj: SnapshotObject, ctx: IconContext) -> str | None:
    """Use the variable profile association or profile icon, made adaptive."""

    variable = obj.variable()
    if variable is None:
        return None
    profile = variable_profile(variable, ctx.lookup_profile)
    if profile is None:
        return None
    icon = ""
    if profile.associations:
        association = pick_association(profile, variable.variable_type, variable.value)
        if association is not None:
            icon = association.icon
    icon = icon or profile.icon
    if not icon:
        return None
    return adaptive_icon(icon, variable, profile, ctx.adaptive_icons)


def variable_fallback_icon(obj: SnapshotObject, ctx: IconContext) -> str | None:
    """Use the generic variable icon unless running strict."""

    if ctx.strict or obj.type is not ObjectType.VARIABLE:
        return None
    return VARIABLE_FALLBACK_ICON


ICON_STRATEGIES: tuple[IconStrategy, ...] = (
    own_icon,
    linked_icon,
    type_icon,
    profile_icon,
    variable_fallback_icon,
)


def resolve_icon_name(
    obj: SnapshotObject,
    ctx: IconContext,
    strategies: Sequence[IconStrategy] = ICON_STRATEGIES,
) -> str | None:
    """Return the first icon name produced by ``strategies``."""

    for strategy in strategies:
        icon = strategy(obj, ctx)
        if icon:
            return icon
    return None


# ----------------- Resolver -----------------


class IconResolver:
    """Resolve icons against a live snapshot of objects and profiles.

    ``objects`` and ``profiles`` are read on every call and never mutated, so
    an external store may keep updating them from push events.
    """

    def __init__(
        self,
        objects: Mapping[Any, Any],
        profiles: Mapping[str, Any],
        *,
        host: str = "",
        icon_base: str = ICON_BASE,
        adaptive_icons: Mapping[str, Sequence[int]] = ADAPTIVE_ICONS,
    ) -> None:
        self._objects = objects
        self._profiles = profiles
        self._host = host.rstrip("/")
        self._icon_base = icon_base.rstrip("/")
        self._adaptive_icons = adaptive_icons

    def lookup_object(self, object_id: int | str) -> SnapshotObject | None:
        """Return the snapshot object for ``object_id`` or ``None``."""

        raw: Any = None
        for key in (f"ID{object_id}", str(object_id), object_id):
            raw = self._objects.get(key)
            if raw is not None:
                break
        if raw is None:
            return None
        if isinstance(raw, SnapshotObject):
            return raw
        try:
            return SnapshotObject.model_validate(raw)
        except ValidationError:
            _LOGGER.debug("Malformed snapshot object %s: %r", object_id, raw)
            return None

    def lookup_profile(self, name: str) -> VariableProfile | None:
        """Return the variable profile called ``name`` or ``None``."""

        raw = self._profiles.get(name)
        if raw is None:
            return None
        if isinstance(raw, VariableProfile):
            return raw
        try:
            return VariableProfile.model_validate(raw)
        except ValidationError:
            _LOGGER.debug("Malformed variable profile %s: %r", name, raw)
            return None

    def context(self, *, strict: bool = False) -> IconContext:
        """Return the strategy context bound to this snapshot."""

        return IconContext(
            lookup_object=self.lookup_object,
            lookup_profile=self.lookup_profile,
            adaptive_icons=self._adaptive_icons,
            strict=strict,
        )

    def icon_path(self, name: str) -> str:
        """Map an icon name to its asset path."""

        if name.startswith(VENDOR_ICON_PREFIX):
            return VENDOR_ICON_PATH_FMT.format(
                host=self._host, name=name[len(VENDOR_ICON_PREFIX) :]
            )
        return f"{self._icon_base}/{name}.svg"

    def resolve_name(self, ref: IconRef, *, strict: bool = False) -> str | None:
        """Return the icon name for ``ref`` without path formatting."""

        if isinstance(ref, str) and not is_numeric_identifier(ref):
            return ref or None
        obj = self._coerce_ref(ref)
        if obj is None:
            return None
        return resolve_icon_name(obj, self.context(strict=strict))

    def resolve_icon(self, ref: IconRef, *, strict: bool = False) -> str | bool | None:
        """Return the icon path for ``ref``.

        ``None`` means the referenced object does not exist; ``False`` means
        no icon was found (only possible in strict mode).
        """
        if isinstance(ref, str) and not is_numeric_identifier(ref):
            return self.icon_path(ref) if ref else False
        obj = self._coerce_ref(ref)
        if obj is None:
            return None
        name = resolve_icon_name(obj, self.context(strict=strict))
        if not name:
            return False
        return self.icon_path(name)

    def _coerce_ref(self, ref: IconRef) -> SnapshotObject | None:
        if isinstance(ref, SnapshotObject):
            return ref
        if isinstance(ref, Mapping):
            try:
                return SnapshotObject.model_validate(ref)
            except ValidationError:
                _LOGGER.debug("Malformed snapshot object reference: %r", ref)
                return None
        if is_numeric_identifier(ref):
            return self.lookup_object(int(ref))
        return None


__all__ = [
    "ICON_STRATEGIES",
    "IconContext",
    "IconResolver",
    "IconStrategy",
    "adaptive_icon",
    "adaptive_percentage",
    "linked_icon",
    "nearest_bucket",
    "own_icon",
    "pick_association",
    "profile_icon",
    "resolve_icon_name",
    "type_icon",
    "variable_fallback_icon",
    "variable_profile",
]
