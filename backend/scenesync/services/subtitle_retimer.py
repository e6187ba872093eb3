"""Re-time subtitles so that no entry crosses a scene boundary."""

from ..config import settings
from ..models import SceneList, Subtitle


def adapt_subtitles(
    subtitles: list[Subtitle],
    scenes: SceneList,
    min_overlap: float | None = None,
) -> list[Subtitle]:
    """
    Intersect every subtitle with every scene.

    A fragment is kept when it is longer than ``min_overlap`` seconds, which
    drops slivers left by boundary rounding. Output is scene-major, then in
    subtitle order, with ids renumbered from 1. Both inputs are small, so the
    full cross join is fine.
    """
    min_overlap = settings.min_subtitle_overlap if min_overlap is None else min_overlap

    adapted: list[Subtitle] = []
    for scene in scenes.scenes:
        for subtitle in subtitles:
            overlap_start = max(scene.start_time, subtitle.start_time)
            overlap_end = min(scene.end_time, subtitle.end_time)

            if overlap_start < overlap_end and overlap_end - overlap_start > min_overlap:
                adapted.append(Subtitle(
                    id=len(adapted) + 1,
                    start_time=overlap_start,
                    end_time=overlap_end,
                    text=subtitle.text,
                ))

    return adapted
