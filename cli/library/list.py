import json

from rich.console import Console
from rich.table import Table

from infra.pipeline.storage import ProjectLibrary
from cli.helpers import storage_root


def cmd_list(args):
    library = ProjectLibrary(storage_root(args))
    projects = library.list()

    if args.json:
        data = [p.metadata.model_dump(mode="json") for p in projects]
        print(json.dumps(data, indent=2))
        return

    if not projects:
        print("No projects in library. Use 'scriptorium library create <title>' to start one.")
        return

    table = Table(title=f"Library ({len(projects)} projects)")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Author")
    table.add_column("Pages", justify="right")
    table.add_column("Stage")
    table.add_column("Modified")

    for project in projects:
        state = library.get_project_storage(project.id).load_state()
        table.add_row(
            project.id,
            project.title,
            project.author or "-",
            str(project.metadata.total_pages),
            state.current_stage.display_name,
            project.metadata.modified.strftime("%Y-%m-%d %H:%M"),
        )

    Console().print(table)
