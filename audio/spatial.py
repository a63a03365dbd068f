"""
Spatial audio calculations for Historical Friction.

Handles stereo panning of places from their bearing relative to the
listener heading.
"""

import math
from typing import Optional, Tuple

from utils.helpers import relative_angle


class SpatialAudio:
    """Handles bearing-relative stereo placement."""

    def calculate_pan(self, bearing: Optional[float], heading: float) -> Tuple[float, float]:
        """Calculate stereo pan for a source at a bearing.

        A missing or non-finite bearing yields a centered pan instead of
        an error.

        Args:
            bearing: Absolute bearing to the source in degrees (0=North)
            heading: Listener heading in degrees (0=North)

        Returns:
            Tuple of (pan, relative_angle)
            - pan: -1.0 (full left) to 1.0 (full right)
            - relative_angle: Angle relative to heading (-180 to 180)
        """
        if bearing is None or not math.isfinite(bearing) or not math.isfinite(heading):
            return 0.0, 0.0

        rel = relative_angle(bearing, heading)

        # -90 = full left, +90 = full right; behind folds back to center
        pan = math.sin(math.radians(rel))
        pan = max(-1.0, min(1.0, pan))

        return pan, rel

    def get_direction_quadrant(self, rel_angle: float) -> str:
        """Get the quadrant description for a relative angle.

        Args:
            rel_angle: Angle relative to facing (-180 to 180)

        Returns:
            Direction string: "front", "right", "left", "behind"
        """
        abs_angle = abs(rel_angle)

        if abs_angle <= 45:
            return "front"
        elif abs_angle <= 135:
            return "right" if rel_angle > 0 else "left"
        else:
            return "behind"


spatial = SpatialAudio()
