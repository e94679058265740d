"""
scriptorium config show command - Display library configuration.
"""

import json

from infra.config import LibraryConfigManager, resolve_env_vars
from cli.helpers import storage_root


def cmd_config_show(args):
    """Show library configuration."""
    manager = LibraryConfigManager(storage_root(args))
    config = manager.load()

    if args.json:
        print(json.dumps(config.model_dump(), indent=2, default=str))
        return

    print(f"\n📋 Library Configuration")
    if manager.exists():
        print(f"   Path: {manager.config_path}\n")
    else:
        print(f"   Path: {manager.config_path} (not created, showing defaults)\n")

    print("OCR engines:")
    if not config.ocr_engines:
        print("  (none configured)")
    for name, engine in config.ocr_engines.items():
        status = "✓" if engine.enabled else "○"
        language = f" language={engine.language}" if engine.language else ""
        extra = f" {engine.extra}" if engine.extra else ""
        print(f"  {status} {name}: type={engine.type}{language}{extra}")

    enhancer = config.enhancer
    status = "✓" if enhancer.enabled else "○"
    print("\nEnhancer:")
    print(f"  {status} {enhancer.type}: model={enhancer.model} url={resolve_env_vars(enhancer.base_url)}")

    defaults = config.defaults
    print("\nDefaults:")
    print(f"  default_engine: {defaults.default_engine}")
    print(f"  ocr_engines: {', '.join(defaults.ocr_engines)}")
    print(f"  language: {defaults.language}")
    print(f"  max_workers: {defaults.max_workers}")
    print(f"  pdf_dpi: {defaults.pdf_dpi}")
    print(f"  include_frontmatter: {defaults.include_frontmatter}")
    print()
