#!/usr/bin/env python3
"""
Scriptorium CLI - Turn scanned documents into edited transcriptions

Commands:
  Library Management:
    scriptorium library create <title>     Create a project
    scriptorium library list               List all projects
    scriptorium library stats              Library statistics
    scriptorium library delete <id>        Delete a project

  Project Workflow:
    scriptorium project <id> info                  Show metadata and progress
    scriptorium project <id> stage show|next|back  Navigate workflow stages
    scriptorium project <id> import <files...>     Import a PDF or images
    scriptorium project <id> preprocess            Prepare images for OCR
    scriptorium project <id> ocr                   Run OCR engines
    scriptorium project <id> transcribe <page>     Save a page transcription
    scriptorium project <id> export                Export the document
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from cli import main


if __name__ == '__main__':
    main()
