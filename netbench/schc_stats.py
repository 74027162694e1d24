"""Counters and reports for SCHC header compression."""

from __future__ import annotations

from dataclasses import dataclass


def _header_lines(original_bits: int, compressed_bits: int) -> list[str]:
    return [
        f"* Total original header: {original_bits} bits ({original_bits / 8.0:.1f} bytes)",
        f"* Total compressed header: {compressed_bits} bits "
        f"({compressed_bits / 8.0:.1f} bytes)",
    ]


def _savings_lines(original_bits: int, compressed_bits: int) -> list[str]:
    if original_bits <= 0:
        return []
    saved = max(original_bits - compressed_bits, 0)
    percent = 100.0 * saved / original_bits
    ratio = original_bits / max(compressed_bits, 1)
    return [
        f"* Compression savings: {saved} bits ({percent:.1f}%, ratio {ratio:.2f}:1)"
    ]


@dataclass
class SchcStats:
    """Statistics gathered while observing potential SCHC compression."""

    packets_processed: int = 0
    packets_matched: int = 0
    total_original_bits: int = 0
    total_compressed_bits: int = 0

    def report_lines(self) -> list[str]:
        """The statistics report, one string per line."""
        matched_pct = (
            100.0 * self.packets_matched / self.packets_processed
            if self.packets_processed > 0
            else 0.0
        )
        return [
            "--- SCHC Observer Statistics ---",
            f"* Packets processed: {self.packets_processed}",
            f"* Packets matched: {self.packets_matched} ({matched_pct:.1f}%)",
            *_header_lines(self.total_original_bits, self.total_compressed_bits),
            *_savings_lines(self.total_original_bits, self.total_compressed_bits),
        ]

    def report(self) -> None:
        """Print the statistics report to standard output."""
        for line in self.report_lines():
            print(line)


@dataclass
class SchcCompressorStats:
    """Statistics gathered while compressing and decompressing packets."""

    packets_compressed: int = 0
    packets_decompressed: int = 0
    compression_failures: int = 0
    decompression_failures: int = 0
    total_original_header_bits: int = 0
    total_compressed_header_bits: int = 0

    def report_lines(self) -> list[str]:
        """The statistics report, one string per line."""
        return [
            "--- SCHC Compressor Statistics ---",
            f"* Packets compressed: {self.packets_compressed}",
            f"* Packets decompressed: {self.packets_decompressed}",
            f"* Compression failures: {self.compression_failures}",
            f"* Decompression failures: {self.decompression_failures}",
            *_header_lines(
                self.total_original_header_bits, self.total_compressed_header_bits
            ),
            *_savings_lines(
                self.total_original_header_bits, self.total_compressed_header_bits
            ),
        ]

    def report(self) -> None:
        """Print the statistics report to standard output."""
        for line in self.report_lines():
            print(line)