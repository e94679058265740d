import glob
import os
import sys
from pathlib import Path

from cli.helpers import open_project, progress_bar, to_index, to_indices
from pipeline.preprocess import PresetType, PreprocessOptions


def _expand_paths(patterns):
    paths = []
    for pattern in patterns:
        matches = sorted(glob.glob(os.path.expanduser(pattern)))
        if not matches:
            print(f"⚠️  No files match pattern: {pattern}")
        paths.extend(Path(p) for p in matches)
    return paths


def cmd_import(args):
    paths = _expand_paths(args.paths)
    if not paths:
        print("❌ No files found")
        sys.exit(1)

    coordinator = open_project(args)
    pdfs = [p for p in paths if p.suffix.lower() == '.pdf']

    if pdfs:
        if len(paths) > 1:
            print("❌ Import either a single PDF or a set of images, not both")
            sys.exit(1)
        with progress_bar(f"Importing {pdfs[0].name}", total=0) as progress:
            pages = coordinator.import_pdf(pdfs[0], progress)
    else:
        with progress_bar(f"Importing {len(paths)} images", total=len(paths)) as progress:
            pages = coordinator.import_images(paths, progress)

    if pages is None:
        print("⚠️  Import discarded: the project changed while importing")
        return
    print(f"✅ Imported {len(pages)} pages")


def cmd_preprocess(args):
    coordinator = open_project(args)

    if args.clear:
        coordinator.clear_preprocessing()
        print("✓ Removed preprocessed images; OCR will use the originals")
        return

    options = PreprocessOptions.from_preset(PresetType(args.preset))
    indices = to_indices(args.pages)
    total = len(indices) if indices is not None else coordinator.total_pages

    with progress_bar(f"Preprocessing ({options.summary})", total=total) as progress:
        outcome = coordinator.preprocess_pages(options, indices, progress)

    print(f"✓ Preprocessed {len(outcome.results)}/{outcome.total} pages")
    for index, error in sorted(outcome.failed.items()):
        print(f"  ❌ Page {index + 1}: {error.description}")


def cmd_ocr(args):
    coordinator = open_project(args)
    available = coordinator.available_engines
    if not available:
        print("❌ No OCR engine is available")
        print("   Install tesseract or enable an engine with 'scriptorium config show'.")
        sys.exit(1)

    indices = to_indices(args.pages)

    if indices is not None and len(indices) == 1:
        page = coordinator.run_ocr(indices[0], args.engines, args.language)
        for engine, outcome in page.engines.items():
            if outcome.success:
                result = outcome.result
                print(f"  ✓ {engine}: {len(result.text)} chars, confidence {result.confidence:.0%}")
            else:
                print(f"  ❌ {engine}: {outcome.error.description}")
        return

    total = len(indices) if indices is not None else coordinator.total_pages
    with progress_bar("OCR", total=total) as progress:
        outcome = coordinator.run_ocr_batch(indices, args.engines, args.language, progress)

    print(f"✓ OCR {outcome.status}: {len(outcome.results)}/{outcome.total} pages")
    for index, error in sorted(outcome.failed.items()):
        print(f"  ❌ Page {index + 1}: {error.description}")
    for index, page in sorted(outcome.results.items()):
        for engine, error in page.failed.items():
            print(f"  ⚠️  Page {index + 1} {engine}: {error.description}")


def cmd_select(args):
    coordinator = open_project(args)
    record = coordinator.select_engine(to_index(args.page), args.engine)
    print(f"✓ {record.display_number}: using {args.engine}")
