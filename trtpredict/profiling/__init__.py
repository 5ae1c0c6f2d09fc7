"""レイヤー単位のプロファイリング."""

from .profile import Profile, ProfileEntry, ProfileState
from .timeline import TimelineProfiler

__all__ = ["Profile", "ProfileEntry", "ProfileState", "TimelineProfiler"]
