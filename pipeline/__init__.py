"""
Transcription workflow stages.

Stages, in order:
- import_pages - render a PDF or copy images into page_NNN.png files
- preprocess - optional image cleanup before recognition
- ocr_pages - run one or more OCR engines per page
- enhance - optional text-to-text refinement of OCR output
- export - combine page transcriptions into one Markdown document

The coordinator ties them to the stage state machine and page registry.
"""
