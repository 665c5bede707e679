from __future__ import annotations

import secrets

from mo2command.core.time import timestamped_name


def new_run_id() -> str:
    # Same-second runs differ in the random suffix.
    return f"{timestamped_name('run')}_{secrets.token_hex(4)}"
