"""Rider-side tools: API client, offline action queue and sync agent."""
from rider.client import DeliveryClient, DeliveryClientError  # noqa: F401
from rider.offline_queue import OfflineActionQueue  # noqa: F401
from rider.agent import DeliveryAgent  # noqa: F401
