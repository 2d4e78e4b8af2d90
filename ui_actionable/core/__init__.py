# Exceptions only; state_holder is imported from its module so that
# domain.action can import core.defects without a cycle.
from .exceptions import *  # noqa: F401,F403
