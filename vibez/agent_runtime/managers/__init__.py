"""Data access managers for the agent runtime.

Managers wrap the session store with the locking rules of the runtime and
raise domain exceptions, never HTTP exceptions -- that translation is the
router's responsibility.
"""
