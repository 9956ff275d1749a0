"""Test package for Quantercise Quick Drill.

Core modules are tested directly with fake clocks, calendars and stores;
the session controller is driven end to end on the cooperative scheduler.
The pygame smoke tests use SDL's dummy drivers so no window is opened.
Run ``pytest`` from the project root.
"""
