"""Encoding profile catalog.

Defines the fixed set of renditions produced for every upload. The
catalog is ordered; renditions are produced in catalog order.

Key concepts:
- CRF (Constant Rate Factor) for consistent perceived quality
- H.264 + AAC in MP4 for universal playback
- Never upscale: profiles above the source height are skipped
"""

from collections.abc import Sequence

from ..shared.models import EncodingProfile


# =============================================================================
# Profile Catalog
# =============================================================================

PROFILE_CATALOG: tuple[EncodingProfile, ...] = (
    # 360p Low - Mobile/Poor Connection
    EncodingProfile(
        name="360p",
        target_height=360,
        quality_factor=23,
    ),
    # 720p HD - Desktop/Tablet
    EncodingProfile(
        name="720p",
        target_height=720,
        quality_factor=23,
    ),
)


def should_skip(profile: EncodingProfile, source_height: int | None) -> bool:
    """Return True if the profile would upscale a source of this height.

    An unknown source height never causes a skip.
    """
    return source_height is not None and source_height < profile.target_height


def select_profiles(
    catalog: Sequence[EncodingProfile],
    source_height: int | None,
) -> tuple[list[EncodingProfile], list[EncodingProfile]]:
    """Split the catalog into profiles to render and profiles to skip.

    Only includes profiles at or below source resolution to prevent
    upscaling, which wastes bandwidth without quality improvement.
    Catalog order is preserved in both lists.

    Args:
        catalog: Ordered profile catalog
        source_height: Probed source height, or None when unknown

    Returns:
        Tuple of (selected, skipped)

    Example:
        >>> selected, skipped = select_profiles(PROFILE_CATALOG, 480)
        >>> [p.name for p in selected], [p.name for p in skipped]
        (['360p'], ['720p'])
    """
    selected: list[EncodingProfile] = []
    skipped: list[EncodingProfile] = []

    for profile in catalog:
        if should_skip(profile, source_height):
            skipped.append(profile)
        else:
            selected.append(profile)

    return selected, skipped


def build_ffmpeg_args(
    profile: EncodingProfile,
    input_path: str,
    output_path: str,
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """Build the FFmpeg command line for a profile.

    Width is derived from the target height with ``scale=-2:<h>`` so the
    aspect ratio is kept and the width stays even (required by libx264).

    Args:
        profile: Profile to render
        input_path: Local source file
        output_path: Local rendition file
        ffmpeg_path: FFmpeg executable

    Returns:
        Argument vector suitable for subprocess.Popen
    """
    return [
        ffmpeg_path,
        "-hide_banner",
        "-nostdin",
        "-loglevel", "error",
        "-y",
        "-i", input_path,
        "-c:v", profile.video_codec,
        "-c:a", profile.audio_codec,
        "-vf", f"scale=-2:{profile.target_height}",
        "-preset", profile.preset,
        "-crf", str(profile.quality_factor),
        "-movflags", "+faststart",  # Enables streaming playback
        output_path,
    ]
