"""Clinic booking system: entity store, availability, booking and appointment lifecycle."""

__version__ = "0.1.0"
