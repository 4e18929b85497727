#!/usr/bin/env python3
"""
Sandbox entrypoint for ui-code-audit.
Reads audit parameters from stdin JSON, runs the audit, outputs JSON to stdout.
Progress lines go to stderr. Exit code 1 on error or a failed CI quality gate.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent / "src"))

from pydantic import ValidationError

from ui_code_audit.models import AuditRequest
from ui_code_audit.orchestrator import run_audit

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    try:
        input_data = json.load(sys.stdin)
    except json.JSONDecodeError as e:
        print(json.dumps({"error": f"Invalid JSON input: {e}"}))
        sys.exit(1)

    if "directory" in input_data and "path" not in input_data:
        input_data["path"] = input_data.pop("directory")

    if not input_data.get("path") and not input_data.get("repo_url"):
        print(
            json.dumps(
                {
                    "error": "Missing required input. Provide either 'repo_url' or 'path'/'directory'.",
                    "examples": {
                        "remote": {"repo_url": "https://github.com/user/repo"},
                        "local": {"path": ".", "categories": ["accessibility", "eslint"]},
                    },
                }
            )
        )
        sys.exit(1)

    try:
        request = AuditRequest.model_validate(input_data)
    except ValidationError as e:
        print(json.dumps({"error": "Invalid input", "details": json.loads(e.json())}))
        sys.exit(1)

    try:
        response = asyncio.run(run_audit(request))
    except Exception as e:
        print(json.dumps({"error": str(e)}))
        sys.exit(1)

    print(json.dumps(response.model_dump(mode="json", by_alias=True)))

    if response.ci is not None and not response.ci.passed and response.ci.fail_on_high:
        logger.error(f"Quality gate failed: {', '.join(response.ci.failures)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
