"""Study material import for various file formats."""
import json
import logging
from datetime import datetime
from pathlib import Path

from cfe_prep.db import insert_rows, select_rows

logger = logging.getLogger(__name__)

# Keyword mapping for auto-categorization
DOMAIN_KEYWORDS = {
    "1-1": ["balance sheet", "income statement", "accrual", "journal entr", "ledger", "accounting equation"],
    "1-2": ["financial statement fraud", "revenue recognition", "channel stuffing", "fictitious revenue", "concealed liabilit", "improper disclosure"],
    "1-3": ["skimming", "cash larceny", "lapping", "cash receipts"],
    "1-4": ["shell company", "billing scheme", "payroll", "ghost employee", "expense reimbursement", "check tampering"],
    "1-5": ["bribery", "kickback", "conflict of interest", "illegal gratuit", "bid rigging", "economic extortion"],
    "1-6": ["placement", "layering", "integration", "structuring", "smurfing"],
    "1-7": ["identity theft", "payment fraud", "card skimmer", "account takeover", "phishing"],
    "2-1": ["burden of proof", "civil law", "common law", "criminal justice"],
    "2-2": ["securities", "insider trading", "ponzi", "sec ", "pump and dump"],
    "2-3": ["bank secrecy act", "suspicious activity report", "fatf", "anti-money laundering", "aml"],
    "2-4": ["miranda", "fourth amendment", "self-incrimination", "due process", "search and seizure"],
    "2-5": ["chain of custody", "hearsay", "admissib", "best evidence", "privilege"],
    "2-6": ["expert witness", "testimony", "deposition", "cross-examination"],
    "3-1": ["fraud examination plan", "predication", "fraud theory approach", "engagement"],
    "3-2": ["documentary evidence", "collecting evidence", "forensic document"],
    "3-3": ["interview theory", "rapport", "introductory question", "informational question"],
    "3-4": ["admission-seeking", "suspect interview", "confession", "denial"],
    "3-5": ["public records", "sources of information", "online database", "corporate records"],
    "3-6": ["benford", "data analysis", "data mining", "analytics", "duplicate test"],
    "3-7": ["digital forensics", "hard drive", "metadata", "imaging", "e-discovery"],
    "3-8": ["net worth method", "tracing", "bank deposit method", "illicit transactions"],
    "4-1": ["criminal behavior", "criminology", "differential association", "deviance"],
    "4-2": ["white-collar", "occupational fraud", "fraud triangle", "rationalization"],
    "4-3": ["corporate governance", "board of directors", "audit committee"],
    "4-4": ["sarbanes-oxley", "management responsibilit", "internal control over financial reporting"],
    "4-5": ["auditor", "external audit", "professional skepticism", "audit standard"],
    "4-6": ["fraud prevention program", "hotline", "whistleblower", "anti-fraud training"],
    "4-7": ["fraud risk assessment", "risk register", "likelihood and impact"],
    "4-8": ["fraud risk management", "risk response", "monitoring activities"],
    "4-9": ["ethics", "code of professional", "integrity", "objectivity"],
}


TEXT_SUFFIXES = (".txt", ".md")


def _read_json(path: Path) -> str:
    return json.dumps(json.loads(path.read_text(encoding="utf-8")), indent=2, ensure_ascii=False)


def _read_yaml(path: Path) -> str:
    import yaml
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True) if data is not None else ""


def _read_pdf(path: Path) -> str:
    from PyPDF2 import PdfReader
    reader = PdfReader(str(path))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _read_docx(path: Path) -> str:
    from docx import Document
    return "\n".join(p.text for p in Document(str(path)).paragraphs if p.text.strip())


def _read_html(path: Path) -> str:
    from bs4 import BeautifulSoup
    soup = BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return soup.get_text("\n", strip=True)


READERS = {
    ".json": _read_json,
    ".yaml": _read_yaml,
    ".yml": _read_yaml,
    ".pdf": _read_pdf,
    ".docx": _read_docx,
    ".html": _read_html,
    ".htm": _read_html,
}


def read_file_content(file_path: str) -> str:
    """Extract the text of a study file, picking a reader by file suffix."""
    path = Path(file_path)
    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        return path.read_text(encoding="utf-8-sig")
    reader = READERS.get(suffix)
    if reader is None:
        logger.warning("No reader for %s files, importing %s as plain text", suffix or "extensionless", path.name)
        return path.read_text(encoding="utf-8-sig", errors="replace")
    return reader(path)


def categorize_content(text: str) -> str | None:
    """Auto-categorize content into a domain by keyword matching. Returns domain_id or None."""
    text_lower = text.lower()
    scores = {
        domain_id: sum(1 for kw in keywords if kw in text_lower)
        for domain_id, keywords in DOMAIN_KEYWORDS.items()
    }
    best = max(scores, key=scores.get)
    return best if scores[best] > 0 else None


def import_material(db_path: str, file_path: str, domain_id: str | None = None) -> dict:
    """Store a study file's text. Auto-categorizes if domain_id not provided."""
    content = read_file_content(file_path)
    if domain_id is None:
        domain_id = categorize_content(content)
    section_id = None
    if domain_id is not None:
        rows = select_rows(db_path, "domains", {"id": domain_id})
        if not rows:
            raise LookupError(f"Domain {domain_id} not found")
        section_id = rows[0]["section_id"]
    name = Path(file_path).name
    insert_rows(db_path, "study_content", [{
        "filename": name,
        "section_id": section_id,
        "domain_id": domain_id,
        "content_text": content,
        "imported_at": datetime.now().isoformat(),
    }])
    logger.info("Imported study material %s into domain %s", name, domain_id)
    return {"filename": name, "domain_id": domain_id, "section_id": section_id, "length": len(content)}


def list_materials(db_path: str, domain_id: str | None = None) -> list[dict]:
    where = {"domain_id": domain_id} if domain_id is not None else None
    return select_rows(db_path, "study_content", where, order_by="imported_at DESC, id DESC")
