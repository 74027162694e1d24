"""Building blocks for a deterministic in-memory network simulator: addressing, routes, specs, events, links, queues, packet framing, pcapng export, SCHC statistics and a golden-test runner."""

__version__ = "0.1.0"