"""
scriptorium config set command - Set configuration values.
"""

import sys

from pydantic import ValidationError

from infra.config import LibraryConfigManager
from cli.helpers import parse_value, storage_root


def cmd_config_set(args):
    """Set a configuration value."""
    manager = LibraryConfigManager(storage_root(args))
    value = parse_value(args.value)

    try:
        manager.set_value(args.key, value)
    except (ValueError, ValidationError) as e:
        print(f"✗ Failed to set {args.key}: {e}")
        sys.exit(1)

    print(f"✓ Set {args.key} = {value}")
    print(f"  Current value: {manager.get_value(args.key)}")


def cmd_config_engine(args):
    """Enable or disable a configured OCR engine."""
    manager = LibraryConfigManager(storage_root(args))
    enabled = args.engine_command == 'enable'

    try:
        config = manager.set_engine_enabled(args.name, enabled)
    except KeyError as e:
        print(f"✗ {e.args[0]}")
        sys.exit(1)

    state = "enabled" if enabled else "disabled"
    print(f"✓ {args.name} {state}")
    print(f"  Enabled engines: {', '.join(config.enabled_engines()) or '(none)'}")
