from rich.console import Console
from rich.table import Table

from infra.pipeline.stages import STAGE_ORDER, get_stage
from cli.helpers import open_project


def cmd_stage_show(args):
    coordinator = open_project(args)
    current = coordinator.current_stage

    table = Table(title=f"{coordinator.project.title} - workflow")
    table.add_column("", no_wrap=True)
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    table.add_column("Ready")
    table.add_column("Description")

    for stage in STAGE_ORDER:
        marker = "▶" if stage == current else ""
        name = stage.display_name + (" (optional)" if stage.is_optional else "")
        ready = "✓" if coordinator.is_stage_ready(stage) else "○"
        table.add_row(marker, name, coordinator.stage_summary(stage), ready, stage.description)

    Console().print(table)
    print(f"Overall completion: {coordinator.completion_percentage:.0%}")


def cmd_stage_next(args):
    coordinator = open_project(args)
    current = coordinator.current_stage

    if not coordinator.can_advance and not args.force:
        if coordinator.is_stage_ready():
            print(f"⚠️  {current.display_name} is the last stage")
        else:
            print(f"⚠️  {current.display_name} is not ready: {coordinator.stage_summary()}")
            print("   Use --force to advance anyway.")
        return

    stage = coordinator.advance()
    print(f"✓ {current.display_name} → {stage.display_name}")


def cmd_stage_back(args):
    coordinator = open_project(args)
    current = coordinator.current_stage
    stage = coordinator.go_back()
    if stage == current:
        print(f"⚠️  {current.display_name} is the first stage")
        return
    print(f"✓ {current.display_name} → {stage.display_name}")


def cmd_stage_goto(args):
    coordinator = open_project(args)
    current = coordinator.current_stage
    stage = coordinator.go_to_stage(get_stage(args.stage))
    print(f"✓ {current.display_name} → {stage.display_name}")
