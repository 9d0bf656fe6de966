# tests/test_classifier.py
import pytest

from media_explainer.classifier import detect_file_type, supported_formats
from media_explainer.models import FileType


@pytest.mark.parametrize("name,expected", [
    ("photo.jpg", FileType.IMAGE),
    ("photo.jpeg", FileType.IMAGE),
    ("scan.png", FileType.IMAGE),
    ("anim.gif", FileType.IMAGE),
    ("pic.bmp", FileType.IMAGE),
    ("pic.tiff", FileType.IMAGE),
    ("pic.webp", FileType.IMAGE),
    ("clip.mp4", FileType.VIDEO),
    ("clip.avi", FileType.VIDEO),
    ("clip.mov", FileType.VIDEO),
    ("clip.mkv", FileType.VIDEO),
    ("clip.webm", FileType.VIDEO),
    ("clip.flv", FileType.VIDEO),
    ("song.mp3", FileType.AUDIO),
    ("song.wav", FileType.AUDIO),
    ("song.ogg", FileType.AUDIO),
    ("song.m4a", FileType.AUDIO),
    ("song.flac", FileType.AUDIO),
    ("song.aac", FileType.AUDIO),
    ("paper.pdf", FileType.PDF),
    ("letter.doc", FileType.DOC),
    ("letter.docx", FileType.DOC),
    ("notes.txt", FileType.TEXT),
])
def test_supported_extensions(name, expected):
    assert detect_file_type(name) == expected


@pytest.mark.parametrize("name", [
    "archive.zip",
    "data.csv",
    "script.py",
    "README",
    "noext.",
    "slides.pptx",
])
def test_unrecognized_extensions_are_unknown(name):
    assert detect_file_type(name) == FileType.UNKNOWN


def test_extension_match_is_case_insensitive():
    assert detect_file_type("/uploads/HOLIDAY.JPG") == FileType.IMAGE
    assert detect_file_type("Report.PDF") == FileType.PDF


def test_only_final_extension_counts():
    assert detect_file_type("video.mp4.txt") == FileType.TEXT


def test_supported_formats_lists_every_type_but_unknown():
    formats = supported_formats()
    assert set(formats) == {t.value for t in FileType} - {"unknown"}
    assert "pdf" in formats["pdf"]
    assert "docx" in formats["doc"]
