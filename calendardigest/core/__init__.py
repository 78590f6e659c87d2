"""Configuration and timezone helpers for calendardigest."""
