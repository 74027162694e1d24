# netbench

Building blocks for a deterministic, in-memory network simulator, and a
runner for golden-output tests of a workbench binary.

The package has no third-party dependencies.

## Modules

- `netbench.ip` – `Ipv4Cidr`, an IPv4 address with a prefix length.
  `Ipv4Cidr.parse("10.0.0.1/24")` reads CIDR notation; a missing prefix
  means `/32`. A prefix of 0, a prefix above 32, an IPv6 address or
  trailing text raises `ValueError`.
- `netbench.route` – `IpRange` (an inclusive address range, built with
  `IpRange.from_cidr` or `IpRange.parse`, supporting `ip in range`) and
  `Route`, whose `next_hop_towards_destination(ip)` returns the next hop
  when the route covers `ip`, otherwise `None`.
- `netbench.spec` – dataclasses describing a network: `NetworkSpec`,
  `NetworkNodeSpec` (with `addresses()`), `NetworkInterface`,
  `NetworkLinkSpec`, and the `NodeKind` enum (`HOST`, `ROUTER`).
- `netbench.event` – link events: `UpdateLinkStatus` (`UP`, `DOWN`),
  `NetworkEventPayload` (with `to_dict()` / `from_dict()` using camelCase
  keys and durations as `{"secs": ..., "nanos": ...}`), `NetworkEvent`,
  and `NetworkEvents`, which sorts events by time. `initial_link_statuses`
  works out the status each link starts in. A link whose first status event
  is "up" starts down, and a link whose first status event is "down" starts
  up. Links with no status events start up.
- `netbench.outbound_buffer` – `OutboundBuffer`, a thread-safe byte
  budget. `reserve(n)` returns `False` when there is not enough space;
  `release(n)` gives the space back.
- `netbench.inbound_queue` – `InboundQueue`, which holds in-flight items.
  Items are delivered in order of arrival time, and items with the same
  arrival time are ordered by their `number` attribute. `send(data, delay, now)`
  adds an item; `deliver(now, max_transmits)` returns `DeliveredTransmit`
  objects.
- `netbench.link` – `PacketPacer` and `NetworkLink`. A `NetworkLink` has a
  fixed delay, a bandwidth limit, and an up/down status (`LinkStatus`).
  While a packet is being put on the wire, the link is busy for
  `ceil(bits / bandwidth)` milliseconds. Calling `send` while the link is
  busy or down raises `RuntimeError`. All times are `timedelta` offsets
  that the caller passes in.
- `netbench.packets` – `internet_checksum`, `build_udp_datagram`,
  `build_ipv4_packet` (no options, don't-fragment, TTL 64, optional ECN bits)
  and `build_ethernet_frame` (zeroed MAC addresses). Also includes
  `hex_preview`. Only IPv4 is supported.
- `netbench.pcap` – `PcapExporter` writes each tracked UDP payload as an
  IPv4 packet into a big-endian pcapng stream, with link type 228 (raw
  IPv4). `PcapExporter.noop()` discards its output. The exporter is a
  context manager. `correct_timestamp` rounds an elapsed time to the
  millisecond and scales it down by 1000 before it is stored. Two
  factories are provided:
  - `NoOpPcapExporterFactory`;
  - `FileBasedPcapExporterFactory(directory=".")`, which writes
    `<node_id>.pcap`.
- `netbench.schc_stats` – `SchcStats` and `SchcCompressorStats`, counters
  for header compression. They have `report_lines()` and `report()`, which
  prints the lines.
- `netbench.golden` – the golden-test runner (see below). It also offers:
  - `load_test_cases`;
  - `run_test_case`, which raises `InvalidOutput` or `GoldenTestError`;
  - `diff_to_string`.

## Installing

```
pip install .
pip install ".[test]"   # adds pytest
```

## Example

```python
from datetime import timedelta
from netbench.route import IpRange
from netbench.link import PacketPacer

r = IpRange.parse("10.0.0.0/24")
print(r.start, r.end_inclusive)      # 10.0.0.0 10.0.0.255
print("10.0.0.42" in r)              # True

pacer = PacketPacer(8_000)           # 8 kbit/s
pacer.track_send(timedelta(), 1200)
print(pacer.duration_until_can_send(timedelta()))   # 0:00:01.200000
```

## Golden tests

```
netbench-golden
netbench-golden --test-name my-case
netbench-golden --binary ./target/release/quinn-workbench --root golden-tests/tests
```

The runner first calls `<binary> rt` to learn which async runtime the binary
was built with. It then runs the binary once for each directory under
`--root`, passing the whitespace-separated arguments from that directory's
`args` file. After each run it reads `replay-log.json` from the current
directory.

For each test directory it compares two outputs with the stored versions:

- stdout, against `expected-stdout.<runtime>`;
- the replay log, against `expected-replay-log.<runtime>`.

When an expected file is missing, the runner writes the current output in
its place. A test fails in these cases:

- either output differs from the stored version;
- the binary writes anything to stderr.

Differences are shown as a line-numbered diff with three lines of context.
The diff is coloured when stdout is a terminal. The command exits with
status 1 if any test failed.

## What this package does not do

The package provides the parts of a simulator, but not the simulator itself.

- There is no network object that wires nodes, links and routes together,
  forwards packets hop by hop or processes scheduled events over time.
- There is no UDP socket or QUIC endpoint backed by the simulated network.
- The SCHC support is limited to the statistics counters and their
  reports. No header compression or decompression is performed.