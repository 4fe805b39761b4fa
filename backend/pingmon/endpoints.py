"""
Endpoint list loader.
CSV format with a header row: ip,hostname[,group][,description]
"""
import csv
import logging
from pathlib import Path
from typing import List
from pydantic import ValidationError
from pingmon.config import ConfigError
from pingmon.schemas.endpoint import Endpoint

logger = logging.getLogger(__name__)


def _clean(value: str) -> str:
    return value.replace('"', "").strip()


def parse_endpoints(lines) -> List[Endpoint]:
    endpoints: List[Endpoint] = []
    for line_num, row in enumerate(csv.reader(lines), start=1):
        if line_num == 1:
            continue  # header
        if not row or not "".join(row).strip() or row[0].lstrip().startswith("#"):
            continue

        fields = [_clean(f) for f in row]
        ip = fields[0]
        hostname = fields[1] if len(fields) > 1 else ""
        group = fields[2] if len(fields) > 2 else ""
        # unquoted commas in the description spill into extra columns
        description = ",".join(fields[3:]).strip() if len(fields) > 3 else ""

        if not ip or not hostname:
            logger.warning("Skipping line %d: missing ip or hostname", line_num)
            continue
        try:
            endpoints.append(Endpoint(ip=ip, hostname=hostname, group=group, description=description))
        except ValidationError as e:
            logger.warning("Skipping line %d: %s", line_num, e.errors()[0].get("msg"))

    return endpoints


def load_endpoints(path) -> List[Endpoint]:
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Endpoints file not found: {path}")
    with open(path, newline="", encoding="utf-8-sig") as fh:
        endpoints = parse_endpoints(fh)
    logger.debug("Loaded %d endpoints from %s", len(endpoints), path)
    return endpoints
