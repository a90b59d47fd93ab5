"""Import Battle Report text files as game runs."""

from __future__ import annotations

from pathlib import Path

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from analysis.categories import RunType
from core.services import ingest_battle_report


class Command(BaseCommand):
    """Import one Battle Report per file, skipping duplicates and invalid reports."""

    help = "Import Battle Report text files (one report per file)."

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument("paths", nargs="+", help="Battle Report text files to import.")
        parser.add_argument(
            "--run-type",
            choices=[run_type.value for run_type in RunType],
            default=None,
            help="Override the run type detected from the tier label.",
        )

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        raw_run_type: str | None = options["run_type"]
        run_type = RunType(raw_run_type) if raw_run_type else None

        paths = [Path(raw) for raw in options["paths"]]
        missing = [str(path) for path in paths if not path.is_file()]
        if missing:
            raise CommandError(f"File(s) not found: {', '.join(missing)}")

        totals = {"imported": 0, "duplicates": 0, "empty": 0, "invalid": 0}
        for path in paths:
            raw_text = path.read_text(encoding="utf-8")
            if not raw_text.strip():
                totals["empty"] += 1
                self.stderr.write(f"Skipped empty file {path}")
                continue

            try:
                _, created = ingest_battle_report(raw_text, run_type=run_type)
            except ValidationError as exc:
                totals["invalid"] += 1
                self.stderr.write(f"Skipped invalid report {path}: {exc.message_dict}")
                continue
            totals["imported" if created else "duplicates"] += 1

        self.stdout.write(f"[IMPORT] {totals}")
        return None
