"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach a real chain node or signing relay
os.environ.setdefault("CHAIN_REST_URL", "http://chain.test")
os.environ.setdefault("CERTIFICATE_BROADCAST_URL", "http://relay.test/certificates")
os.environ.setdefault("LOG_FORMAT", "text")
