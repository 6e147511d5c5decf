from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional, Pattern, Tuple, Union

from src.safetynet.domain.exceptions import ConfigurationError


class Disabled(Enum):
    """
    Sentinel for a switched-off policy dimension.
    A disabled limit skips the count check; a disabled timeframe counts all history.
    """
    DISABLED = "disabled"

    def __repr__(self) -> str:
        return "DISABLED"


DISABLED = Disabled.DISABLED

Limit = Union[int, Disabled]
Timeframe = Union[timedelta, Disabled]


def validate_limit(limit) -> Limit:
    if limit is DISABLED:
        return limit
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ConfigurationError(f"limit must be a non-negative integer or DISABLED, got {limit!r}")
    if limit < 0:
        raise ConfigurationError(f"limit must be non-negative, got {limit}")
    return limit


def validate_timeframe(timeframe) -> Timeframe:
    if timeframe is DISABLED:
        return timeframe
    if not isinstance(timeframe, timedelta):
        raise ConfigurationError(f"timeframe must be a timedelta or DISABLED, got {timeframe!r}")
    if timeframe <= timedelta(0):
        raise ConfigurationError(f"timeframe must be positive, got {timeframe}")
    return timeframe


@dataclass(frozen=True)
class ChannelPolicy:
    """
    Fully resolved limit/timeframe pair for one channel.
    """
    limit: Limit
    timeframe: Timeframe

    def __post_init__(self):
        validate_limit(self.limit)
        validate_timeframe(self.timeframe)


@dataclass(frozen=True)
class ChannelPolicyPatch:
    """
    Partial channel options contributed by one configuration layer.
    None means "not specified here, fall through to the previous layer".
    """
    limit: Optional[Limit] = None
    timeframe: Optional[Timeframe] = None

    def __post_init__(self):
        if self.limit is not None:
            validate_limit(self.limit)
        if self.timeframe is not None:
            validate_timeframe(self.timeframe)

    def apply(self, base: Optional["ChannelPolicyPatch"]) -> "ChannelPolicyPatch":
        if base is None:
            return self
        return ChannelPolicyPatch(
            limit=self.limit if self.limit is not None else base.limit,
            timeframe=self.timeframe if self.timeframe is not None else base.timeframe,
        )


@dataclass(frozen=True)
class ActionFilter:
    """
    Selects which actions are guarded at all.
    An empty filter watches everything; `only` narrows, `excluded` removes.
    """
    only: Tuple[str, ...] = ()
    excluded: Tuple[str, ...] = ()

    def watches(self, action: str) -> bool:
        if self.only and action not in self.only:
            return False
        return action not in self.excluded


@dataclass(frozen=True)
class PolicyLayer:
    """
    One partial configuration layer (process settings, owner declaration).
    """
    whitelist: Optional[Pattern[str]] = None
    channels: Dict[str, ChannelPolicyPatch] = field(default_factory=dict)


@dataclass(frozen=True)
class PolicyContext:
    """
    Immutable, resolved policy for one owning type.
    Built once at owner initialisation and passed explicitly into evaluations.
    """
    channel: str
    whitelist: Optional[Pattern[str]]
    channels: Dict[str, ChannelPolicyPatch] = field(default_factory=dict)
    filters: ActionFilter = field(default_factory=ActionFilter)

    def options_for(self, channel: str) -> ChannelPolicy:
        patch = self.channels.get(channel)
        if patch is None:
            raise ConfigurationError(f"no options configured for channel {channel!r}")
        if patch.limit is None or patch.timeframe is None:
            raise ConfigurationError(
                f"channel {channel!r} is missing "
                f"{'limit' if patch.limit is None else 'timeframe'}"
            )
        return ChannelPolicy(limit=patch.limit, timeframe=patch.timeframe)
