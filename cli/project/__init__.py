"""Project CLI commands: scriptorium project <id> <command>."""
from cli.project.info import cmd_info, cmd_meta, cmd_page_show, cmd_page_next, cmd_page_prev
from cli.project.stage import cmd_stage_show, cmd_stage_next, cmd_stage_back, cmd_stage_goto
from cli.project.process import cmd_import, cmd_preprocess, cmd_ocr, cmd_select
from cli.project.edit import cmd_enhance, cmd_transcribe
from cli.project.export import cmd_export
from cli.project.config import cmd_project_config_show, cmd_project_config_set, cmd_project_config_clear
from infra.pipeline.stages import STAGE_NAMES
from pipeline.preprocess import PresetType


def setup_parser(subparsers):
    """Setup project command parser."""
    project_parser = subparsers.add_parser('project', help='Single project operations')
    project_parser.add_argument('project_id', help='Project ID')

    project_subparsers = project_parser.add_subparsers(dest='project_command', help='Project command')
    project_subparsers.required = True

    # =========================================================================
    # Project-level commands
    # =========================================================================

    info_parser = project_subparsers.add_parser('info', help='Show project metadata and progress')
    info_parser.add_argument('--json', action='store_true', help='Output as JSON')
    info_parser.set_defaults(func=cmd_info)

    meta_parser = project_subparsers.add_parser('meta', help='Update project metadata')
    meta_parser.add_argument('--title', help='Document title')
    meta_parser.add_argument('--author', help='Author')
    meta_parser.add_argument('--date', dest='publication_date', help='Publication date')
    meta_parser.add_argument('--notes', help='Free-form notes')
    meta_parser.set_defaults(func=cmd_meta)

    # =========================================================================
    # Page navigation: project <id> page <action>
    # =========================================================================

    page_parser = project_subparsers.add_parser('page', help='Page navigation')
    page_subparsers = page_parser.add_subparsers(dest='page_command', help='Page command')
    page_subparsers.required = True

    page_show_parser = page_subparsers.add_parser('show', help='Select a page and show its artifacts')
    page_show_parser.add_argument('page', type=int, help='Page number (1-based)')
    page_show_parser.set_defaults(func=cmd_page_show)

    page_next_parser = page_subparsers.add_parser('next', help='Select the next page')
    page_next_parser.set_defaults(func=cmd_page_next)

    page_prev_parser = page_subparsers.add_parser('prev', help='Select the previous page')
    page_prev_parser.set_defaults(func=cmd_page_prev)

    # =========================================================================
    # Stage navigation: project <id> stage <action>
    # =========================================================================

    stage_parser = project_subparsers.add_parser('stage', help='Workflow stage navigation')
    stage_subparsers = stage_parser.add_subparsers(dest='stage_command', help='Stage command')
    stage_subparsers.required = True

    stage_show_parser = stage_subparsers.add_parser('show', help='Show all stages with status')
    stage_show_parser.set_defaults(func=cmd_stage_show)

    stage_next_parser = stage_subparsers.add_parser('next', help='Advance to the next stage')
    stage_next_parser.add_argument('--force', action='store_true', help='Advance even if the stage is not ready')
    stage_next_parser.set_defaults(func=cmd_stage_next)

    stage_back_parser = stage_subparsers.add_parser('back', help='Return to the previous stage')
    stage_back_parser.set_defaults(func=cmd_stage_back)

    stage_goto_parser = stage_subparsers.add_parser('goto', help='Jump to a stage')
    stage_goto_parser.add_argument('stage', help=f"Stage name ({', '.join(STAGE_NAMES)})")
    stage_goto_parser.set_defaults(func=cmd_stage_goto)

    # =========================================================================
    # Processing commands
    # =========================================================================

    import_parser = project_subparsers.add_parser('import', help='Import a PDF or page images')
    import_parser.add_argument('paths', nargs='+', help='One PDF, or image files (glob patterns allowed)')
    import_parser.set_defaults(func=cmd_import)

    preprocess_parser = project_subparsers.add_parser('preprocess', help='Preprocess page images for OCR')
    preprocess_parser.add_argument(
        '--preset',
        choices=[p.value for p in PresetType],
        default=PresetType.DOCUMENT_OCR.value,
        help='Filter preset',
    )
    preprocess_parser.add_argument('--pages', type=int, nargs='+', help='Page numbers (default: all)')
    preprocess_parser.add_argument('--clear', action='store_true', help='Remove all preprocessed images instead')
    preprocess_parser.set_defaults(func=cmd_preprocess)

    ocr_parser = project_subparsers.add_parser('ocr', help='Run OCR engines on pages')
    ocr_parser.add_argument('--pages', type=int, nargs='+', help='Page numbers (default: all)')
    ocr_parser.add_argument('--engine', dest='engines', action='append', help='Engine to run (repeatable)')
    ocr_parser.add_argument('--language', help='Recognition language (e.g. eng, deu)')
    ocr_parser.set_defaults(func=cmd_ocr)

    select_parser = project_subparsers.add_parser('select', help='Select the OCR engine result for a page')
    select_parser.add_argument('page', type=int, help='Page number (1-based)')
    select_parser.add_argument('engine', help='Engine name')
    select_parser.set_defaults(func=cmd_select)

    enhance_parser = project_subparsers.add_parser('enhance', help='Enhance OCR text with the text enhancer')
    enhance_parser.add_argument('page', type=int, help='Page number (1-based)')
    enhance_parser.add_argument('--engine', help='OCR result to enhance (default: selected engine)')
    enhance_parser.add_argument('--context', help='Context passed to the enhancer')
    enhance_parser.add_argument('--save', action='store_true', help='Save the result as the page transcription')
    enhance_parser.set_defaults(func=cmd_enhance)

    transcribe_parser = project_subparsers.add_parser('transcribe', help='Save a page transcription')
    transcribe_parser.add_argument('page', type=int, help='Page number (1-based)')
    source = transcribe_parser.add_mutually_exclusive_group()
    source.add_argument('--file', help='Read the transcription from a file')
    source.add_argument('--text', help='Transcription text')
    transcribe_parser.add_argument('--enhanced', action='store_true', help='Mark the text as enhanced')
    transcribe_parser.set_defaults(func=cmd_transcribe)

    export_parser = project_subparsers.add_parser('export', help='Export the combined transcription')
    export_parser.add_argument('--output', help='Output path (default: <project>/<title>_transcription.md)')
    export_parser.add_argument('--no-frontmatter', action='store_true', help='Omit the YAML frontmatter')
    export_parser.add_argument('--preview', action='store_true', help='Print the document without writing it')
    export_parser.set_defaults(func=cmd_export)

    # =========================================================================
    # Project config: project <id> config <action>
    # =========================================================================

    config_parser = project_subparsers.add_parser('config', help='Project configuration overrides')
    config_subparsers = config_parser.add_subparsers(dest='config_command', help='Config command')
    config_subparsers.required = True

    config_show_parser = config_subparsers.add_parser('show', help='Show project configuration')
    config_show_parser.add_argument('--json', action='store_true', help='Output as JSON')
    config_show_parser.set_defaults(func=cmd_project_config_show)

    config_set_parser = config_subparsers.add_parser('set', help='Set project configuration')
    config_set_parser.add_argument('key', help='Config key (ocr_engines, language, max_workers, include_frontmatter)')
    config_set_parser.add_argument('value', help='Value to set')
    config_set_parser.set_defaults(func=cmd_project_config_set)

    config_clear_parser = config_subparsers.add_parser('clear', help='Clear project overrides')
    config_clear_parser.set_defaults(func=cmd_project_config_clear)


__all__ = ['setup_parser']
