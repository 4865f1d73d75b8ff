from .database import Classes, Items, Professions, Talents, Zones

__all__ = ["Items", "Zones", "Talents", "Professions", "Classes"]
