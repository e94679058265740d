from cli.helpers import get_coordinator


def cmd_create(args):
    coordinator = get_coordinator(args)
    project = coordinator.create_project(
        args.title,
        author=args.author,
        publication_date=args.publication_date,
        notes=args.notes,
    )

    print(f"\n✅ Created project: {project.title}")
    print(f"   ID:        {project.id}")
    print(f"   Directory: {project.root}")
    print(f"   Stage:     {coordinator.current_stage.display_name}")
    print(f"\n   Next: scriptorium project {project.id} import <pdf or images>")
