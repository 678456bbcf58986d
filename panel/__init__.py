"""panel/ -- Panel-owned state and listing rules for the CasinoVizion admin panel.

The venue REST backend owns casinos and categories. Everything the panel keeps
for itself lives here: panel settings, per-casino content toggles, and the
rules the casino list page filters with.

Layer rule: panel/ imports only stdlib, third-party libraries, and core/.
It does NOT import from auth/, api/, or web/.
"""
