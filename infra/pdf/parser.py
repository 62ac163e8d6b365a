import os
import re
import pdfplumber

SUPPORTED_EXTENSIONS = (".pdf", ".txt", ".md")


def parse_pdf_text(path: str) -> str:
    text_parts = []
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            t = page.extract_text() or ""
            text_parts.append(t)
    return "\n".join(text_parts)


def read_text_file(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return f.read()


def clean_text(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t\f\v]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def read_document(path: str) -> str:
    """Extract and clean the text of a PDF, plain-text or markdown file."""
    ext = os.path.splitext(path)[1].lower()
    if ext == ".pdf":
        raw = parse_pdf_text(path)
    elif ext in (".txt", ".md"):
        raw = read_text_file(path)
    else:
        raise ValueError(f"unsupported file format: {ext or '<none>'}")
    return clean_text(raw)
