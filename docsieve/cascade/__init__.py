from docsieve.cascade.router import CascadeRouter
from docsieve.cascade.state import CascadeState, CascadeStatus, initial_state, transition

__all__ = ["CascadeRouter", "CascadeState", "CascadeStatus", "initial_state", "transition"]
