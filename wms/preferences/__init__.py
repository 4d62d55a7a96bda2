from .store import Theme, Preferences, PreferenceStore

__all__ = ["Theme", "Preferences", "PreferenceStore"]
