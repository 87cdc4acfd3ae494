"""
Run-time and communication statistics.

Collected by the backend and channels, accumulated across repetitions, and
passed through to the caller without interpretation by the protocol.
"""

from dataclasses import dataclass, field


def format_bytes(n: int) -> str:
    """Format bytes with KiB/MiB suffix."""
    if n >= 1024 * 1024:
        return f"{n / (1024**2):.2f} MiB"
    if n >= 1024:
        return f"{n / 1024:.2f} KiB"
    return f"{n} B"


def format_time(seconds: float) -> str:
    """Format time with appropriate unit."""
    if seconds >= 1:
        return f"{seconds:.2f}s"
    if seconds >= 0.001:
        return f"{seconds*1000:.2f}ms"
    return f"{seconds*1_000_000:.1f}us"


@dataclass
class CommunicationStats:
    """Bytes and messages through one channel."""

    bytes_sent: int = 0
    bytes_received: int = 0
    messages_sent: int = 0
    messages_received: int = 0

    def record_send(self, num_bytes: int) -> None:
        self.bytes_sent += num_bytes
        self.messages_sent += 1

    def record_recv(self, num_bytes: int) -> None:
        self.bytes_received += num_bytes
        self.messages_received += 1

    def add(self, other: "CommunicationStats") -> None:
        self.bytes_sent += other.bytes_sent
        self.bytes_received += other.bytes_received
        self.messages_sent += other.messages_sent
        self.messages_received += other.messages_received

    def snapshot(self) -> "CommunicationStats":
        return CommunicationStats(
            self.bytes_sent, self.bytes_received, self.messages_sent, self.messages_received
        )

    def since(self, earlier: "CommunicationStats") -> "CommunicationStats":
        """Difference between this snapshot and an earlier one."""
        return CommunicationStats(
            self.bytes_sent - earlier.bytes_sent,
            self.bytes_received - earlier.bytes_received,
            self.messages_sent - earlier.messages_sent,
            self.messages_received - earlier.messages_received,
        )

    def to_dict(self) -> dict:
        return {
            "bytes_sent": self.bytes_sent,
            "bytes_received": self.bytes_received,
            "messages_sent": self.messages_sent,
            "messages_received": self.messages_received,
        }


@dataclass
class RunTimeStats:
    """Wall-clock durations per named barrier, one entry per occurrence."""

    timings: dict[str, list[float]] = field(default_factory=dict)
    rounds: int = 0

    def record(self, name: str, seconds: float) -> None:
        self.timings.setdefault(name, []).append(seconds)

    def add(self, other: "RunTimeStats") -> None:
        for name, values in other.timings.items():
            self.timings.setdefault(name, []).extend(values)
        self.rounds += other.rounds

    def total(self, name: str) -> float:
        return sum(self.timings.get(name, []))

    def to_dict(self) -> dict:
        return {
            "rounds": self.rounds,
            "timings": {
                name: {
                    "count": len(values),
                    "total_s": sum(values),
                    "mean_s": sum(values) / len(values),
                }
                for name, values in self.timings.items()
            },
        }


@dataclass
class BackendStats:
    """Both kinds of statistics, as handed to the caller."""

    run_time: RunTimeStats = field(default_factory=RunTimeStats)
    communication: CommunicationStats = field(default_factory=CommunicationStats)

    def add(self, other: "BackendStats") -> None:
        self.run_time.add(other.run_time)
        self.communication.add(other.communication)

    def to_dict(self) -> dict:
        return {
            "run_time": self.run_time.to_dict(),
            "communication": self.communication.to_dict(),
        }


def format_stats(title: str, stats: BackendStats) -> str:
    """Human-readable statistics table."""
    width = 70
    lines = [f"{' ' + title + ' ':─^{width}}"]
    for name, values in stats.run_time.timings.items():
        mean = sum(values) / len(values)
        lines.append(
            f"  {name + ':':<16} {format_time(mean):>12} mean  "
            f"{format_time(sum(values)):>12} total  ({len(values)}×)"
        )
    lines.append(f"  {'Rounds:':<16} {stats.run_time.rounds:>12}")
    comm = stats.communication
    lines.append(
        f"  {'Sent:':<16} {format_bytes(comm.bytes_sent):>12}  ({comm.messages_sent} messages)"
    )
    lines.append(
        f"  {'Received:':<16} {format_bytes(comm.bytes_received):>12}  ({comm.messages_received} messages)"
    )
    lines.append("─" * width)
    return "\n".join(lines)
