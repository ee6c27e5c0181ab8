"""
Candidate profile types.

The profile is read-only input to ranking; it is built from the CV
document the surrounding application stores.
"""

from .profile import CandidateProfile, Education, Experience, Publication, load_profile  # noqa: F401
