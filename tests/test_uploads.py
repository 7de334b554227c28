import re

from doc_chat_server.documents.uploads import (
    UploadedFile,
    generate_document_id,
    is_text_file,
    read_uploaded_files,
)


def test_is_text_file():
    assert is_text_file("notes.txt", None)
    assert is_text_file("README.md", "application/octet-stream")
    assert is_text_file("data.csv", "text/csv")
    assert not is_text_file("image.png", "image/png")
    assert not is_text_file("archive", None)


def test_document_id_format():
    doc_id = generate_document_id()
    assert re.fullmatch(r"file-\d{13}-[0-9a-z]{9}", doc_id)
    assert generate_document_id() != doc_id


def test_rejected_file_does_not_block_the_batch():
    accepted, rejected = read_uploaded_files([
        UploadedFile("a.txt", "text/plain", b"first"),
        UploadedFile("image.png", "image/png", b"\x89PNG\r\n"),
        UploadedFile("b.md", None, "café".encode("utf-8")),
    ])

    assert [d.name for d in accepted] == ["a.txt", "b.md"]
    assert accepted[1].content == "café"
    assert accepted[1].size == 5
    assert len({d.id for d in accepted}) == 2

    assert [r.filename for r in rejected] == ["image.png"]
    assert "is not a text file" in rejected[0].reason


def test_undecodable_text_is_rejected():
    accepted, rejected = read_uploaded_files([
        UploadedFile("bad.txt", "text/plain", b"\xff\xfe\xfa"),
    ])
    assert accepted == []
    assert rejected[0].reason == "Failed to read bad.txt"
