"""Reparse stored Battle Reports and refresh derived run fields."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from core.services import reparse_game_run
from gamedata.models import GameRun


class Command(BaseCommand):
    """Reparse stored runs from their raw text."""

    help = "Reparse stored Battle Reports and refresh GameRun fields (idempotent)."

    def add_arguments(self, parser) -> None:
        """Add command arguments."""

        parser.add_argument(
            "--check",
            action="store_true",
            help="Dry-run: report what would change without writing.",
        )
        parser.add_argument(
            "--write",
            action="store_true",
            help="Write changes to the database.",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=None,
            help="Optional maximum number of runs to process.",
        )

    def handle(self, *args, **options) -> str | None:
        """Run the command."""

        check: bool = options["check"]
        write: bool = options["write"]
        limit: int | None = options["limit"]

        if check and write:
            raise CommandError("Use either --check or --write, not both.")
        if not check and not write:
            raise CommandError("Refusing to write without explicit intent; pass --check or --write.")

        queryset = GameRun.objects.exclude(raw_text="").order_by("id")
        if limit is not None:
            queryset = queryset[:limit]

        totals = {"processed": 0, "updated": 0, "no_change": 0}
        for game_run in queryset:
            totals["processed"] += 1
            if not reparse_game_run(game_run):
                totals["no_change"] += 1
                continue

            totals["updated"] += 1
            if write:
                game_run.save()

        mode = "CHECK" if check else "WRITE"
        self.stdout.write(f"[{mode}] {totals}")
        return None
