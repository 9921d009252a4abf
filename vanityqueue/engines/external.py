"""
Adapter for the external accelerated search engine (profanity for Tron).

The binary is a black box: it is invoked with the pattern and prints,
somewhere in its combined stdout/stderr, a line like

    Private: 3f0c...e1 Address:TXYZ...

plus throughput lines "Time: 8s" and "Total: 15.619 MH/s".
"""

import logging
import math
import os
import re
import subprocess
import sys
from decimal import Decimal, InvalidOperation

from ..errors import EngineError
from ..models import PatternSpec
from ..schemas import MatchResult

log = logging.getLogger("engine.external")

KEY_RE = re.compile(r"Private: ([a-fA-F0-9]+) Address:([a-zA-Z0-9]+)")
TIME_RE = re.compile(r"Time:\s*(\d+)s")
SPEED_RE = re.compile(r"Total:\s*([\d.]+)\s*MH/s")


def binary_name(platform: str = sys.platform) -> str:
    if platform == "darwin":
        return "profanity.arm64"
    if platform.startswith("win"):
        return "profanity.exe"
    return "profanity.x64"


def parse_output(output: str) -> MatchResult:
    """Extract key, address and an attempt estimate from engine output.

    total_generated = speed (MH/s) * time (s) * 10^6, or 0 when the engine
    printed no throughput lines.

    Raises:
        EngineError: no "Private: ... Address:..." line in the output.
    """
    m = KEY_RE.search(output)
    if not m:
        raise EngineError(f"could not find private key and address in engine output: {output}")

    total = 0
    t = TIME_RE.search(output)
    s = SPEED_RE.search(output)
    if t and s:
        try:
            total = math.floor(Decimal(s.group(1)) * int(t.group(1)) * 1_000_000)
        except InvalidOperation:
            # "1.2.3" matches [\d.]+ but is not a float
            log.warning("unparseable engine throughput", extra={"event": "engine_bad_speed"})

    return MatchResult(private_key=m.group(1), address=m.group(2), total_generated=total)


class ExternalEngine:
    def __init__(self, engine_dir: str = ".", quit_count: int = 1, binary: str | None = None):
        self.binary = binary or os.path.join(engine_dir, binary_name())
        self.quit_count = quit_count

    def command(self, spec: PatternSpec) -> list[str]:
        return [
            self.binary,
            "--matching", spec.template,
            "--prefix-count", str(spec.prefix_count),
            "--suffix-count", str(spec.suffix_count),
            "--quit-count", str(self.quit_count),
        ]

    def search(self, spec: PatternSpec) -> MatchResult:
        if not os.path.isfile(self.binary):
            raise EngineError(f"engine executable not found: {self.binary}")

        cmd = self.command(spec)
        log.info(f"running {' '.join(cmd)}", extra={"event": "engine_exec"})
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise EngineError(f"failed to start {self.binary}: {e}") from e

        if proc.returncode != 0:
            raise EngineError(
                f"engine exited with status {proc.returncode}, output: {proc.stdout}"
            )
        return parse_output(proc.stdout)

    def close(self) -> None:
        # subprocesses are not tracked; a timed-out run is left to finish
        pass
