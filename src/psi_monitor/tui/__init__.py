"""Textual dashboard for psi-monitor."""
