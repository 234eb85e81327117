"""
Gas Reporter

Collects gas used per contract method from transaction receipts and writes a
plain-text summary after a test session.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union


class GasReporter:
    """Gas usage collector"""

    def __init__(self, enabled: bool = True, output_file: Optional[str] = None):
        self.enabled = enabled
        self.output_file = output_file
        self._usage: Dict[Tuple[str, str], List[int]] = {}

    def record(self, contract: str, method: str, receipt) -> None:
        """Record the gas used by a mined transaction"""
        if not self.enabled:
            return
        gas_used = receipt["gasUsed"]
        self._usage.setdefault((contract, method), []).append(int(gas_used))

    def summary(self) -> List[Dict[str, object]]:
        rows = []
        for (contract, method), values in sorted(self._usage.items()):
            rows.append({
                'contract': contract,
                'method': method,
                'calls': len(values),
                'min': min(values),
                'max': max(values),
                'avg': sum(values) // len(values),
            })
        return rows

    def format_report(self) -> str:
        header = f"{'Contract':<24} {'Method':<28} {'Calls':>6} {'Min':>10} {'Max':>10} {'Avg':>10}"
        lines = [
            "Gas Report",
            f"Generated: {datetime.now().isoformat(timespec='seconds')}",
            "=" * len(header),
            header,
            "-" * len(header),
        ]
        for row in self.summary():
            lines.append(
                f"{row['contract']:<24} {row['method']:<28} {row['calls']:>6} "
                f"{row['min']:>10} {row['max']:>10} {row['avg']:>10}"
            )
        lines.append("=" * len(header))
        return "\n".join(lines) + "\n"

    def write_report(self, path: Union[str, Path, None] = None) -> Optional[Path]:
        """
        Write the report to disk

        Returns:
            Path written, or None when disabled or nothing was recorded
        """
        if not self.enabled or not self._usage:
            return None
        target = Path(path or self.output_file or "gas-report.txt")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.format_report(), encoding='utf-8')
        print(f"✓ Gas report written: {target}")
        return target
