import json

from cli.helpers import completion_symbol, open_project, to_index


def cmd_info(args):
    coordinator = open_project(args)
    metadata = coordinator.project.metadata
    registry = coordinator.registry

    if args.json:
        data = {
            'metadata': metadata.model_dump(mode="json"),
            'state': coordinator.state.to_json(),
            'completion': coordinator.completion_percentage,
            'stages': {stage.value: summary for stage, summary in coordinator.stage_summaries().items()},
        }
        print(json.dumps(data, indent=2))
        return

    print(f"\n📖 {metadata.title}")
    print("=" * 80)
    print(f"ID:          {metadata.id}")
    print(f"Author:      {metadata.author or 'Unknown'}")
    print(f"Date:        {metadata.publication_date or 'Unknown'}")
    print(f"Pages:       {metadata.total_pages}")
    print(f"Source:      {metadata.source_type or '-'}")
    if metadata.notes:
        print(f"Notes:       {metadata.notes}")

    print(f"\n📊 Progress")
    print("=" * 80)
    print(f"Stage:       {coordinator.current_stage.display_name}")
    selected = coordinator.selected_page
    print(f"Page:        {selected + 1 if selected is not None else '-'}")
    print(f"Completion:  {coordinator.completion_percentage:.0%}")
    print(f"Preprocessed: {registry.preprocessed_count()}")
    for engine, count in sorted(registry.ocr_counts().items()):
        print(f"OCR {engine}: {count}")
    print(f"Transcribed: {registry.transcribed_count()}")
    print()


def cmd_meta(args):
    coordinator = open_project(args)
    updates = {
        key: getattr(args, key)
        for key in ('title', 'author', 'publication_date', 'notes')
        if getattr(args, key) is not None
    }
    if not updates:
        print("Nothing to update. Use --title, --author, --date or --notes.")
        return

    metadata = coordinator.update_metadata(**updates)
    print(f"✓ Updated {', '.join(updates)}")
    print(f"  {metadata.display_info}")


def _print_page(coordinator, index: int) -> None:
    record = coordinator.page(index)
    progress = coordinator.completion_progress(index)

    print(f"\n{completion_symbol(progress)} {record.display_number} of {coordinator.total_pages}  ({progress:.0%})")
    print(f"  Original:      {record.original_image.name if record.original_image else '-'}")
    print(f"  Preprocessed:  {record.preprocessed_image.name if record.preprocessed_image else '-'}")
    if record.ocr_results:
        for engine in sorted(record.ocr_results):
            marker = " (selected)" if engine == record.selected_engine else ""
            print(f"  OCR {engine}:{marker}")
    else:
        print("  OCR:           -")
    transcription = record.transcription.name if record.transcription else '-'
    enhanced = " (enhanced)" if record.enhanced else ""
    print(f"  Transcription: {transcription}{enhanced}")
    print()


def cmd_page_show(args):
    coordinator = open_project(args)
    record = coordinator.go_to_page(to_index(args.page))
    coordinator.save_state()
    _print_page(coordinator, record.index)


def cmd_page_next(args):
    coordinator = open_project(args)
    record = coordinator.next_page()
    if record is None:
        print("No pages imported yet.")
        return
    coordinator.save_state()
    _print_page(coordinator, record.index)


def cmd_page_prev(args):
    coordinator = open_project(args)
    record = coordinator.previous_page()
    if record is None:
        print("No page selected.")
        return
    coordinator.save_state()
    _print_page(coordinator, record.index)
