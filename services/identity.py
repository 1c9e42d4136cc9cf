# services/identity.py - Entity identifier generation
#
# Imported collections are merged into existing ones, so ids must be
# collision-resistant: 128-bit random uuid4, hex encoded.

import uuid


def new_id() -> str:
    """Return a fresh identifier for a job, device or point."""
    return uuid.uuid4().hex
