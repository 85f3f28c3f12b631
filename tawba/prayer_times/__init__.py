from .prayer_base import AladhanBackend, PrayerBackend, PrayerTimesError, create_backend, next_prayer
