"""
Flashlight ratings — batch scoring core.

Scores every active catalog flashlight across five use-case profiles, persists
the results as an auditable run, and dense-ranks each profile.
"""
__version__ = '1.0.0'
