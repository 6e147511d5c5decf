from enum import Enum


class Channel(str, Enum):
    """
    Communication media known out of the box.
    Any plain string is accepted as a channel tag; these are the common ones.
    """
    EMAIL = "email"
    SMS = "sms"


def channel_tag(channel) -> str:
    if isinstance(channel, Channel):
        return channel.value
    return str(channel)
