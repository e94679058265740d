"""
Project-level config commands.

scriptorium project <id> config show
scriptorium project <id> config set <key> <value>
scriptorium project <id> config clear
"""

import json
import sys

from pydantic import ValidationError

from infra.config import ProjectConfigManager, load_library_config
from infra.pipeline.storage import ProjectStorage
from cli.helpers import parse_value, storage_root

VALID_KEYS = ['ocr_engines', 'language', 'max_workers', 'include_frontmatter']


def _manager(args) -> ProjectConfigManager:
    storage = ProjectStorage(args.project_id, storage_root=storage_root(args))
    if not storage.exists:
        print(f"✗ Project not found: {args.project_id}")
        sys.exit(1)
    return ProjectConfigManager(storage.project_dir)


def _print_resolved(resolved) -> None:
    print("\nResolved configuration:")
    print(f"  ocr_engines: {', '.join(resolved.ocr_engines)}")
    print(f"  default_engine: {resolved.default_engine}")
    print(f"  language: {resolved.language}")
    print(f"  max_workers: {resolved.max_workers}")
    print(f"  pdf_dpi: {resolved.pdf_dpi}")
    print(f"  include_frontmatter: {resolved.include_frontmatter}")
    if resolved.extra:
        print(f"  extra: {resolved.extra}")


def cmd_project_config_show(args):
    manager = _manager(args)
    project_config = manager.load()
    resolved = manager.resolve(load_library_config(storage_root(args)))

    if args.json:
        data = {
            "overrides": project_config.model_dump(exclude_none=True),
            "resolved": resolved.model_dump(),
        }
        print(json.dumps(data, indent=2))
        return

    print(f"\n📖 Project Configuration: {args.project_id}\n")

    overrides = project_config.model_dump(exclude_none=True, exclude_defaults=True)
    if overrides:
        print("Overrides (project-specific):")
        for key, value in overrides.items():
            print(f"  {key}: {value}")
    else:
        print("Overrides: (none - using library defaults)")

    _print_resolved(resolved)
    print()


def cmd_project_config_set(args):
    manager = _manager(args)

    if args.key not in VALID_KEYS:
        print(f"✗ Invalid key: {args.key}")
        print(f"  Valid keys: {', '.join(VALID_KEYS)}")
        sys.exit(1)

    value = parse_value(args.value)
    if args.key == 'ocr_engines' and isinstance(value, str):
        value = [value]

    try:
        manager.set(**{args.key: value})
    except ValidationError as e:
        print(f"✗ Failed to set {args.key}: {e}")
        sys.exit(1)

    print(f"✓ Set {args.key} = {value} for project '{args.project_id}'")
    _print_resolved(manager.resolve(load_library_config(storage_root(args))))


def cmd_project_config_clear(args):
    manager = _manager(args)

    if not manager.exists():
        print(f"✓ Project '{args.project_id}' has no overrides (already using library defaults)")
        return

    manager.clear()
    print(f"✓ Cleared configuration for project '{args.project_id}'")
    print("  Project will now use library defaults")
