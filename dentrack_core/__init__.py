# =============================================================================
# dentrack_core/__init__.py
# DentTrack Core - local-first dental history storage and sync
# =============================================================================
"""
DentTrack core package.

Holds the domain model for a patient's dental history (teeth, treatments,
dentists) and the offline-first layer that keeps a local cache and an
optional Supabase account in step.
"""

__version__ = "0.3.0"
