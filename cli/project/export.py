from pathlib import Path

from cli.helpers import open_project


def cmd_export(args):
    coordinator = open_project(args)
    output = Path(args.output).expanduser() if args.output else None
    include_frontmatter = False if args.no_frontmatter else None

    result = coordinator.export(output, include_frontmatter=include_frontmatter, preview=args.preview)

    if args.preview:
        print(result.text)
    else:
        print(f"✅ Exported {len(result.pages_included)}/{result.total_pages} pages")
        print(f"   {result.path}")

    if result.partial:
        missing = ", ".join(str(i + 1) for i in result.missing_pages)
        print(f"⚠️  Partial export; pages without a transcription: {missing}")
