from enum import Enum


class ProviderName(str, Enum):
    """Known embed/streaming source providers."""

    AUTOEMBED = "AutoEmbed"
    TWO_EMBED = "2Embed"
    MULTIEMBED = "MultiEmbed"
    EMBEDSU = "EmbedSu"


class DeliveryType(str, Enum):
    HLS = "hls"
    DASH = "dash"
    PROGRESSIVE = "progressive"
    LICENSED_EMBED = "licensed-embed"


class VideoCodec(str, Enum):
    H264 = "h264"
    HEVC = "hevc"
    AV1 = "av1"


class IngestJob(str, Enum):
    DISCOVERY = "discovery"
    MATCH = "match"
    REFRESH = "refresh"
    REVERIFY = "reverify"


class IngestStatus(str, Enum):
    OK = "OK"
    SKIP = "SKIP"
    ERROR = "ERROR"
    UPGRADED = "UPGRADED"
