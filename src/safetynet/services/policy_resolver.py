import re
from datetime import timedelta
from typing import Any, Dict, Iterable, Mapping, Optional

from src.config.settings import SafetynetSettings
from src.safetynet.domain.channel import Channel, channel_tag
from src.safetynet.domain.exceptions import ConfigurationError
from src.safetynet.domain.policy import (
    DISABLED,
    ActionFilter,
    ChannelPolicyPatch,
    PolicyContext,
    PolicyLayer,
)

DEFAULT_LAYER = PolicyLayer(
    whitelist=re.compile(r"@example.com"),
    channels={
        Channel.EMAIL.value: ChannelPolicyPatch(limit=1, timeframe=timedelta(minutes=30)),
    },
)


def merge_layers(layers: Iterable[Optional[PolicyLayer]]) -> PolicyLayer:
    """
    Fold layers left to right; later layers override only the keys they set.
    """
    whitelist = None
    channels: Dict[str, ChannelPolicyPatch] = {}
    for layer in layers:
        if layer is None:
            continue
        if layer.whitelist is not None:
            whitelist = layer.whitelist
        for name, patch in layer.channels.items():
            key = channel_tag(name)
            channels[key] = patch.apply(channels.get(key))
    return PolicyLayer(whitelist=whitelist, channels=channels)


def compile_whitelist(pattern: str):
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ConfigurationError(f"invalid whitelist pattern {pattern!r}: {exc}") from exc


def _parse_limit(channel: str, raw: Any):
    if raw is None:
        return None
    if raw is False:
        return DISABLED
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ConfigurationError(f"{channel}.limit must be an integer or false, got {raw!r}")
    return raw


def _parse_timeframe(channel: str, raw: Any):
    if raw is None:
        return None
    if raw is False:
        return DISABLED
    if isinstance(raw, timedelta):
        return raw
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ConfigurationError(f"{channel}.timeframe must be seconds or false, got {raw!r}")
    return timedelta(seconds=raw)


def channel_patches(raw_channels: Mapping[str, Mapping[str, Any]]) -> Dict[str, ChannelPolicyPatch]:
    patches: Dict[str, ChannelPolicyPatch] = {}
    for name, options in raw_channels.items():
        if not isinstance(options, Mapping):
            raise ConfigurationError(f"options for channel {name!r} must be a mapping")
        unknown = set(options) - {"limit", "timeframe"}
        if unknown:
            raise ConfigurationError(f"unknown options for channel {name!r}: {sorted(unknown)}")
        patches[channel_tag(name)] = ChannelPolicyPatch(
            limit=_parse_limit(name, options.get("limit")),
            timeframe=_parse_timeframe(name, options.get("timeframe")),
        )
    return patches


def layer_from_settings(settings: SafetynetSettings) -> PolicyLayer:
    whitelist = compile_whitelist(settings.WHITELIST) if settings.WHITELIST else None
    return PolicyLayer(whitelist=whitelist, channels=channel_patches(settings.CHANNELS))


class PolicyResolver:
    """
    Builds immutable PolicyContexts.
    Precedence: built-in defaults < process settings < owner declaration.
    Call-time overrides are applied later, by the engine.
    """

    def __init__(self, settings_layer: Optional[PolicyLayer] = None):
        self.settings_layer = settings_layer

    @classmethod
    def from_settings(cls, settings: SafetynetSettings) -> "PolicyResolver":
        return cls(layer_from_settings(settings))

    def resolve(
        self,
        channel,
        owner_layer: Optional[PolicyLayer] = None,
        filters: Optional[ActionFilter] = None,
    ) -> PolicyContext:
        merged = merge_layers([DEFAULT_LAYER, self.settings_layer, owner_layer])
        return PolicyContext(
            channel=channel_tag(channel),
            whitelist=merged.whitelist,
            channels=merged.channels,
            filters=filters or ActionFilter(),
        )
