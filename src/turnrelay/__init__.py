"""
turnrelay: turn-save relay between a game process and cloud storage.

The game cannot be modified. It talks to us over a local channel,
one command per connection. We rename, upload, download and hand
back a path it can load.
"""

import os

__version__ = "0.1.0"

RELAY_HOME = os.environ.get("TURNRELAY_HOME", "~/.turnrelay")
