"""
Contributions app.

Holds the amounts members owe and exposes ContributionService, the
collaborator the payments app looks contributions up through and
signals when a payment settles one.
"""
