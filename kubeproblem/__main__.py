"""Entry point for `python -m kubeproblem`.

Without arguments the watcher starts with environment configuration, which
is what the container runs. Arguments go to the ``kube-problem`` CLI:

    python -m kubeproblem
    python -m kubeproblem scan -n prod -o json
"""

from __future__ import annotations

import sys

from kubeproblem.cli import cli

cli.main(args=sys.argv[1:] or ["run"], prog_name="kube-problem")
