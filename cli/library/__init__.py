from cli.library.create import cmd_create
from cli.library.list import cmd_list
from cli.library.stats import cmd_stats
from cli.library.delete import cmd_delete


def setup_parser(subparsers):
    """Setup library command parser."""
    library_parser = subparsers.add_parser('library', help='Library management commands')
    library_subparsers = library_parser.add_subparsers(dest='library_command', help='Library command')
    library_subparsers.required = True

    create_parser = library_subparsers.add_parser('create', help='Create a new project')
    create_parser.add_argument('title', help='Document title')
    create_parser.add_argument('--author', default='', help='Author')
    create_parser.add_argument('--date', dest='publication_date', help='Publication date')
    create_parser.add_argument('--notes', help='Free-form notes')
    create_parser.set_defaults(func=cmd_create)

    list_parser = library_subparsers.add_parser('list', help='List all projects')
    list_parser.add_argument('--json', action='store_true', help='Output as JSON')
    list_parser.set_defaults(func=cmd_list)

    stats_parser = library_subparsers.add_parser('stats', help='Library statistics')
    stats_parser.set_defaults(func=cmd_stats)

    delete_parser = library_subparsers.add_parser('delete', help='Delete project from library')
    delete_parser.add_argument('project_id', help='Project ID')
    delete_parser.add_argument('-y', '--yes', action='store_true', help='Skip confirmation')
    delete_parser.set_defaults(func=cmd_delete)


__all__ = ['cmd_create', 'cmd_list', 'cmd_stats', 'cmd_delete', 'setup_parser']
