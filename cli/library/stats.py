from infra.pipeline.storage import ProjectLibrary
from cli.helpers import storage_root


def cmd_stats(args):
    library = ProjectLibrary(storage_root(args))
    stats = library.get_stats()

    print(f"\n📚 Library Statistics")
    print("=" * 40)
    print(f"Location:  {library.storage_root}")
    print(f"Projects:  {stats['total_projects']}")
    print(f"Pages:     {stats['total_pages']}")
    print()
