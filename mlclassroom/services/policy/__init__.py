from mlclassroom.services.policy.enforcer import PolicyDecision, PolicyEnforcer

__all__ = ["PolicyDecision", "PolicyEnforcer"]
