"""Yom-Yom attendance package.

Keeps daily group attendance for a childcare setting in sync with the backend:
status vocabulary, a per-(group, date) snapshot store, an optimistic overlay for
parent actions and the day-closure gate. A thin Flask controller layer exposes
the staff and parent operations.
"""
