from .ingress import RealtimeIngress

__all__ = ["RealtimeIngress"]
