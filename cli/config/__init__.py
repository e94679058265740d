"""
Library config commands: init, config show, config set, config engine.
"""

from cli.config.init import cmd_init
from cli.config.show import cmd_config_show
from cli.config.set import cmd_config_engine, cmd_config_set


def setup_parser(subparsers):
    init_parser = subparsers.add_parser('init', help='Write a default config.yaml for the library')
    init_parser.add_argument('--force', action='store_true', help='Replace an existing config.yaml')
    init_parser.set_defaults(func=cmd_init)

    config_parser = subparsers.add_parser('config', help='Inspect or edit the library config')
    config_subparsers = config_parser.add_subparsers(dest='config_command', help='Config command')
    config_subparsers.required = True

    # scriptorium config show [--json]
    show_parser = config_subparsers.add_parser('show', help='Print the library config')
    show_parser.add_argument('--json', action='store_true', help='Output as JSON')
    show_parser.set_defaults(func=cmd_config_show)

    # scriptorium config set <dotted.key> <value>
    set_parser = config_subparsers.add_parser('set', help='Set one nested value')
    set_parser.add_argument('key', help='Dotted key, e.g. defaults.language or ocr_engines.ollama.extra.model')
    set_parser.add_argument('value', help='Value (true/false, numbers and JSON lists are parsed)')
    set_parser.set_defaults(func=cmd_config_set)

    # scriptorium config engine enable|disable <name>
    engine_parser = config_subparsers.add_parser('engine', help='Enable or disable an OCR engine')
    engine_subparsers = engine_parser.add_subparsers(dest='engine_command', help='Engine command')
    engine_subparsers.required = True
    for action in ('enable', 'disable'):
        action_parser = engine_subparsers.add_parser(action, help=f'{action.capitalize()} an engine')
        action_parser.add_argument('name', help='Engine name from config.yaml')
        action_parser.set_defaults(func=cmd_config_engine)


__all__ = [
    'setup_parser',
    'cmd_init',
    'cmd_config_show',
    'cmd_config_set',
    'cmd_config_engine',
]
