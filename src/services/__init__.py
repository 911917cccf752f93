"""Business logic services used by handlers.

Services are imported lazily by handlers (see handlers.dependencies) so a cold
start that only answers /api/health never builds storage or payment clients.
"""

# Do NOT import services here - use lazy loading in handlers instead
