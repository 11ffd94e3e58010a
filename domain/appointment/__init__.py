"""Appointment domain package (read-only view used by cancellation)."""
from .entity import Appointment
from .repository import AppointmentRepository

__all__ = ["Appointment", "AppointmentRepository"]
