# config_local.example.py

"""
Example local overrides.

Usage:
  1) Copy this file to `config_local.py`
  2) Adjust values for your machine
  3) Never commit `config_local.py` (it is gitignored)

Prefer `.env` for secrets. This file should contain only safe overrides.
"""

# Example: run headless (scheduler + notifications only)
# CONSOLE_ENABLED = False

# Example: push reminders to your phone through Matrix
# MATRIX_ENABLED = True

# Example: keep notifications inside the terminal
# DESKTOP_NOTIFICATIONS = False
