"""Realtime message types. Every frame is ``{"type": ..., "payload": ...}`` as JSON text."""

# Server -> client
CONNECTED = "CONNECTED"
STATE = "STATE"
STARTED = "STARTED"
STOPPING = "STOPPING"
PONG = "PONG"

# Synthesised locally by the client adapter, never sent by the server
DISCONNECTED = "DISCONNECTED"

# Client -> server
PING = "PING"
SET_MODE = "SET_MODE"
SET_PRIZE = "SET_PRIZE"
SET_UI = "SET_UI"
START_SPIN = "START_SPIN"
STOP_SPIN = "STOP_SPIN"
RESET = "RESET"

COMMANDS = {SET_MODE, SET_PRIZE, SET_UI, START_SPIN, STOP_SPIN, RESET}
