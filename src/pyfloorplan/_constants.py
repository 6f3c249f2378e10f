"""Internal constants shared across the library."""

STATES_PATH = "api/states"
STREAM_PATH = "api/stream"
USER_AGENT = "pyfloorplan"

#: Server-sent event framing used by the Home Assistant event stream.
DATA_PREFIX = "data: "
PING_PAYLOAD = "ping"
STATE_CHANGED_EVENT = "state_changed"

DEFAULT_RECONNECT_DELAY: float = 10.0
DEFAULT_SNAPSHOT_TIMEOUT: float = 5.0
DEFAULT_CONNECT_TIMEOUT: float = 10.0
DEFAULT_QUEUE_SIZE = 100

#: Domains the floorplan traditionally tracks (see ``FloorplanConfig.domains``).
DEFAULT_DOMAINS: frozenset[str] = frozenset({"light", "switch", "cover", "binary_sensor"})

# ------------------------------------------------------------------
# Visual classes (mutually exclusive on a floorplan element)
# ------------------------------------------------------------------

CLASS_ON = "on"
CLASS_OFF = "off"
CLASS_UNAVAILABLE = "unavailable"
STATE_CLASSES: tuple[str, ...] = (CLASS_ON, CLASS_OFF, CLASS_UNAVAILABLE)

HTML_WRAPPER = '<div class="hass-floorplan">{}</div>'
