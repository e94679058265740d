import sys

from cli.helpers import get_coordinator


def cmd_delete(args):
    coordinator = get_coordinator(args)
    project = coordinator.library.load(args.project_id)

    if project is None:
        print(f"❌ Project not found: {args.project_id}")
        sys.exit(1)

    if not args.yes:
        print(f"\n⚠️  WARNING: This will DELETE all files for:")
        print(f"   ID:        {project.id}")
        print(f"   Title:     {project.title}")
        print(f"   Author:    {project.author or 'Unknown'}")
        print(f"   Directory: {project.root}")

        try:
            response = input("\nAre you sure? (yes/no): ").strip().lower()
            if response not in ['yes', 'y']:
                print("Cancelled.")
                sys.exit(0)
        except EOFError:
            print("\n❌ Cancelled (no input)")
            sys.exit(0)

    coordinator.delete_project(project.id)
    print(f"\n✅ Deleted: {project.id}")
    print(f"   Files deleted from: {project.root}")
