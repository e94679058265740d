"""
scriptorium init command - Initialize library configuration.
"""

from infra.config import LibraryConfig, LibraryConfigManager
from cli.helpers import storage_root


def cmd_init(args):
    """Initialize library configuration."""
    root = storage_root(args)
    manager = LibraryConfigManager(root)

    if manager.exists() and not args.force:
        print(f"✗ Config already exists at: {manager.config_path}")
        print("  Use --force to overwrite")
        return

    config = LibraryConfig.with_defaults()
    manager.save(config)
    print(f"✓ Created config at: {manager.config_path}")

    print("\nConfiguration summary:")
    print(f"  Storage root: {root}")
    print(f"  Default OCR engines: {', '.join(config.defaults.ocr_engines)}")
    print(f"  Enhancer: {config.enhancer.type} ({config.enhancer.model})")
    print(f"  Default max workers: {config.defaults.max_workers}")
