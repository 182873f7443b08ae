"""
Attendance Service - Face Recognition Attendance

Tracks faces in a video feed, matches them against the enrolled identities
of a group and records each confirmed person's attendance once per session.
"""

__version__ = "1.0.0"
