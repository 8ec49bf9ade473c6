#!/usr/bin/env python3
"""
generate_sample_logs.py

Builds sample-data/iis-logs/, a folder of IIS W3C extended logs in the shape
real servers leave behind: two sites whose daily files share a name, a query
string with a literal space, a request split across two physical lines, a
line too mangled to recover, a Latin-1 user agent, an empty log and a file
that is not an IIS log at all.

Run: python sample-data/generate_sample_logs.py [target-folder]
"""

from __future__ import annotations

import random
import sys
from pathlib import Path

OUT = Path(__file__).parent / "iis-logs"

FIELDS = (
    "date time s-ip cs-method cs-uri-stem cs-uri-query s-port cs-username c-ip "
    "cs(User-Agent) cs(Referer) sc-status sc-substatus sc-win32-status time-taken"
)
DIRECTIVES = [
    "#Software: Microsoft Internet Information Services 10.0",
    "#Version: 1.0",
    "#Date: 2024-01-01 00:00:00",
    f"#Fields: {FIELDS}",
]

STEMS = ["/", "/index.html", "/api/orders", "/api/orders/7", "/css/site.css", "/login.aspx"]
AGENTS = [
    "Mozilla/5.0+(Windows+NT+10.0;+Win64;+x64)",
    "Mozilla/5.0+(Macintosh;+Intel+Mac+OS+X+14_2)",
    "curl/8.4.0",
]
STATUSES = [200, 200, 200, 304, 404, 500]

# Requests per file in the "clean" part of each site log.
CLEAN_ROWS = 40


def request_line(rng: random.Random, second: int) -> str:
    minute, sec = divmod(second, 60)
    return " ".join(
        [
            "2024-01-01",
            f"10:{minute:02d}:{sec:02d}",
            "10.0.0.5",
            rng.choice(["GET", "POST"]),
            rng.choice(STEMS),
            "-",
            "443",
            "-",
            f"10.1.1.{rng.randint(2, 250)}",
            rng.choice(AGENTS),
            "-",
            str(rng.choice(STATUSES)),
            "0",
            "0",
            str(rng.randint(1, 900)),
        ]
    )


def site_log(seed: int) -> bytes:
    rng = random.Random(seed)
    lines = list(DIRECTIVES)
    lines.extend(request_line(rng, second) for second in range(CLEAN_ROWS))
    # literal space inside the query string: one surplus token
    lines.append("2024-01-01 10:45:00 10.0.0.5 GET /search q=iis logs 443 - 10.1.1.7 curl/8.4.0 - 200 0 0 12")
    # one request broken across two physical lines inside the user agent
    lines.append("2024-01-01 10:45:01 10.0.0.5 GET /api/orders id=7 443 - 10.1.1.9 Mozilla/5.0+(Win")
    lines.append("dows+NT+10.0) - 200 0 0 31")
    # two surplus tokens: beyond repair
    lines.append("2024-01-01 10:45:02 10.0.0.5 GET /a b c - 443 - 10.1.1.9 curl/8.4.0 - 200 0 0 5")
    # IIS restarts and repeats its directive block
    lines.extend(DIRECTIVES)
    lines.append(request_line(rng, 46 * 60 + 3))
    return ("\r\n".join(lines) + "\r\n").encode("utf-8")


def latin1_log() -> bytes:
    lines = list(DIRECTIVES)
    lines.append(
        "2024-01-02 08:00:00 10.0.0.6 GET /caf\u00e9 - 80 - 10.1.1.3 Navigateur+fran\u00e7ais - 200 0 0 20"
    )
    lines.append("2024-01-02 08:00:01 10.0.0.6 GET /index.html - 80 - 10.1.1.3 curl/8.4.0 - 404 0 2 3")
    return ("\n".join(lines) + "\n").encode("latin-1")


def empty_log() -> bytes:
    return ("\r\n".join(DIRECTIVES[:3]) + "\r\n").encode("utf-8")


def foreign_log() -> bytes:
    return b"#Fields: timestamp level message\n1704096000 INFO service started\n"


def build_sample_folder(target: Path = OUT) -> dict[str, Path]:
    """Write the sample logs under ``target`` and return them keyed by role."""
    target = Path(target)
    files = {
        "site1": target / "W3SVC1" / "u_ex240101.log",
        "site2": target / "W3SVC2" / "u_ex240101.log",
        "latin1": target / "W3SVC3" / "u_ex240102.log",
        "empty": target / "W3SVC4" / "u_ex240103.log",
        "foreign": target / "app-service.log",
    }
    payloads = {
        "site1": site_log(1),
        "site2": site_log(2),
        "latin1": latin1_log(),
        "empty": empty_log(),
        "foreign": foreign_log(),
    }
    for role, path in files.items():
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payloads[role])
    return files


if __name__ == "__main__":
    destination = Path(sys.argv[1]) if len(sys.argv) > 1 else OUT
    for role, path in build_sample_folder(destination).items():
        print(f"{role:8s} {path}")
