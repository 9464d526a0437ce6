"""
Maps image and media property bags to display-ready sections.
"""
import re
from typing import Any, Dict, List, Optional

from ..models import AudioSection, ExifSection, ImageExtendedSection, VideoSection

CONTAINER_FORMATS = {
    'mkv': 'MKV',
    'webm': 'WebM',
    'mp4': 'MP4',
    'm4v': 'M4V',
    'mov': 'QuickTime',
    'avi': 'AVI',
    'flv': 'Flash Video',
    'wmv': 'Windows Media',
    'mpg': 'MPEG-PS', 'mpeg': 'MPEG-PS',
    'mts': 'MPEG-TS', 'm2ts': 'MPEG-TS',
    '3gp': '3GPP',
}

_CHAPTER_KEY_RE = re.compile(r'^\d{2}_\d{2}_\d{2}_?\d{3}$')


# --- Formatting helpers ---

def format_dimensions(width, height) -> Optional[str]:
    if not width or not height:
        return None
    return f"{int(width)} × {int(height)}"


def format_shutter(seconds: Optional[float]) -> Optional[str]:
    if not seconds or seconds <= 0:
        return None
    if seconds < 1:
        return f"1/{1 / seconds:.0f}"
    return f"{seconds:.1f}s"


def format_gps(lat: Optional[float], lon: Optional[float]) -> Optional[str]:
    if lat is None or lon is None:
        return None
    ns = 'N' if lat >= 0 else 'S'
    ew = 'E' if lon >= 0 else 'W'
    return f"{abs(lat):.6f}°{ns}, {abs(lon):.6f}°{ew}"


def format_duration(seconds: Optional[float], with_hours: bool = True) -> Optional[str]:
    """h:mm:ss when the duration reaches an hour (and with_hours), else m:ss."""
    if seconds is None or seconds < 0:
        return None
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if with_hours and hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{total // 60}:{secs:02d}"


def format_bitrate(bps) -> Optional[str]:
    value = _number(bps)
    if not value:
        return None
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f} Mbps"
    return f"{value / 1000:.0f} kbps"


def _number(value) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    m = re.match(r'\s*(\d+(?:\.\d+)?)', str(value))
    return float(m.group(1)) if m else None


def _duration_seconds(track: Dict[str, Any]) -> Optional[float]:
    # MediaInfo duration is in milliseconds
    ms = _number(track.get('duration'))
    return ms / 1000.0 if ms is not None else None


# --- Images ---

def build_exif_section(bag: Optional[Dict[str, Any]]) -> Optional[ExifSection]:
    if not bag:
        return None

    make = bag.get('make')
    model = bag.get('model')
    if make and model and not model.lower().startswith(make.lower()):
        camera = f"{make} {model}"
    else:
        camera = model or make

    focal = bag.get('focal_length')
    f_number = bag.get('f_number')
    iso = bag.get('iso')

    return ExifSection(
        camera=camera,
        lens=bag.get('lens'),
        focal_length=f"{focal:.0f}mm" if focal else None,
        aperture=f"f/{f_number:.1f}" if f_number else None,
        shutter_speed=format_shutter(bag.get('exposure_time')),
        iso=f"ISO {iso}" if iso else None,
        date_taken=bag.get('date_taken'),
        image_size=format_dimensions(bag.get('width'), bag.get('height')),
        color_space=bag.get('color_space'),
        gps_location=format_gps(bag.get('gps_latitude'), bag.get('gps_longitude')),
        color_profile=bag.get('icc_profile'),
        bit_depth=bag.get('bit_depth'),
        has_hdr_gain_map=bag.get('has_hdr_gain_map'),
        hdr_format=bag.get('hdr_format'),
    )


def build_image_extended_section(bag: Optional[Dict[str, Any]]) -> Optional[ImageExtendedSection]:
    if not bag:
        return None
    keywords = bag.get('keywords')
    if isinstance(keywords, (list, tuple)):
        keywords = ', '.join(keywords) or None
    return ImageExtendedSection(
        copyright=bag.get('copyright'),
        creator=bag.get('creator'),
        keywords=keywords,
        rating=bag.get('rating'),
        creator_tool=bag.get('creator_tool'),
        description=bag.get('description'),
        headline=bag.get('headline'),
    )


# --- Video ---

def _hdr_format(video: Dict[str, Any]) -> str:
    hdr = str(video.get('hdr_format') or '')
    transfer = str(video.get('transfer_characteristics') or '')
    if 'Dolby Vision' in hdr:
        return 'Dolby Vision'
    if 'HDR10+' in hdr or '2094' in hdr:
        return 'HDR10+'
    if '2086' in hdr or 'HDR10' in hdr or 'PQ' in transfer:
        return 'HDR10'
    if 'HLG' in hdr or 'HLG' in transfer:
        return 'HLG'
    return 'SDR'


def _transfer_function(video: Dict[str, Any]) -> Optional[str]:
    transfer = video.get('transfer_characteristics')
    if not transfer:
        return None
    if 'PQ' in transfer or '2084' in transfer:
        return 'PQ'
    if 'HLG' in transfer:
        return 'HLG'
    return 'SDR'


def _chapter_count(menus: List[Dict[str, Any]]) -> Optional[int]:
    count = sum(1 for menu in menus for key in menu if _CHAPTER_KEY_RE.match(key))
    return count or None


def build_video_section(bag: Optional[Dict[str, Any]], ext: str) -> Optional[VideoSection]:
    if not bag:
        return None
    general = bag.get('general') or {}
    videos = bag.get('video') or []
    audios = bag.get('audio') or []
    texts = bag.get('text') or []
    video = videos[0] if videos else {}
    if not general and not videos and not audios:
        return None

    frame_rate = _number(video.get('frame_rate'))
    attachments = general.get('attachments')

    return VideoSection(
        duration=format_duration(_duration_seconds(general) or _duration_seconds(video)),
        resolution=format_dimensions(video.get('width'), video.get('height')),
        codec=video.get('format') or video.get('codec_id'),
        frame_rate=f"{round(frame_rate, 2):g} fps" if frame_rate else None,
        bitrate=format_bitrate(general.get('overall_bit_rate') or video.get('bit_rate')),
        video_tracks=len(videos),
        audio_tracks=len(audios),
        hdr_format=_hdr_format(video) if video else None,
        color_primaries=video.get('color_primaries'),
        transfer_function=_transfer_function(video),
        chapter_count=_chapter_count(bag.get('menu') or []),
        subtitle_tracks=len(texts) or None,
        attachment_count=len(str(attachments).split(' / ')) if attachments else None,
        container_format=CONTAINER_FORMATS.get(ext) or general.get('format'),
    )


# --- Audio ---

def _channels(value) -> Optional[str]:
    n = _number(value)
    if not n:
        return None
    n = int(n)
    return {1: 'Mono', 2: 'Stereo'}.get(n, f"{n} channels")


def build_audio_section(bag: Optional[Dict[str, Any]]) -> Optional[AudioSection]:
    if not bag:
        return None
    general = bag.get('general') or {}
    audios = bag.get('audio') or []
    audio = audios[0] if audios else {}
    if not general and not audio:
        return None

    year = None
    date = general.get('recorded_date') or general.get('year')
    if date:
        m = re.search(r'\d{4}', str(date))
        year = m.group(0) if m else None

    sample_rate = _number(audio.get('sampling_rate'))

    return AudioSection(
        title=general.get('title') or general.get('track_name'),
        artist=general.get('performer'),
        album=general.get('album'),
        album_artist=general.get('album_performer'),
        genre=general.get('genre'),
        year=year,
        duration=format_duration(_duration_seconds(general) or _duration_seconds(audio), with_hours=False),
        bitrate=format_bitrate(audio.get('bit_rate') or general.get('overall_bit_rate')),
        sample_rate=f"{sample_rate / 1000:.1f} kHz" if sample_rate else None,
        channels=_channels(audio.get('channel_s')),
    )
