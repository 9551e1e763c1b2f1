#!/usr/bin/env python3
"""
Generate the three synthetic demo contracts ingested by POST /demo/ingest.

The contracts deliberately differ on payment terms, liability caps,
termination notice and confidentiality periods, so /query, /decompose and
/compare have something concrete to find and contrast. All parties and
figures are fictional.

Usage:
    python scripts/generate_demo_contracts.py [output_dir]

Output (default output_dir = data/):
    data/Master_Services_Agreement.pdf
    data/NDA_Contract.pdf
    data/SaaS_License_Agreement.pdf
"""

import sys
from pathlib import Path

from fpdf import FPDF
from fpdf.enums import XPos, YPos


class ContractDocument(FPDF):
    """PDF with a running title header and a page footer."""

    def __init__(self, title: str):
        super().__init__()
        self.contract_title = title

    def header(self):
        self.set_font("Helvetica", "B", 10)
        self.set_text_color(100, 100, 100)
        self.cell(
            0, 8, self.contract_title,
            new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C",
        )
        self.line(10, self.get_y(), 200, self.get_y())
        self.ln(4)

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(
            0, 10, f"Page {self.page_no()}/{{nb}} | Synthetic contract for demo purposes",
            align="C",
        )

    def clause(self, heading: str, text: str):
        self.set_font("Helvetica", "B", 11)
        self.set_text_color(0, 0, 0)
        self.ln(3)
        self.cell(0, 8, heading, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_font("Helvetica", "", 10)
        self.set_text_color(30, 30, 30)
        self.multi_cell(0, 5.5, text)
        self.ln(1)


# =============================================================================
# Contract Texts
# =============================================================================
# (filename, title, preamble, [(clause heading, clause text), ...])

CONTRACTS = [
    (
        "Master_Services_Agreement.pdf",
        "Master Services Agreement",
        "This Master Services Agreement is entered into between Northwind "
        "Consulting Ltd. (the \"Provider\") and Contoso Retail plc (the "
        "\"Client\"), effective 1 March 2024.",
        [
            ("1. Services",
             "The Provider will deliver the professional services described "
             "in each Statement of Work. Each Statement of Work is governed "
             "by this Agreement."),
            ("2. Payment Terms",
             "The Provider invoices monthly in arrears. Invoices are payable "
             "within 30 days of receipt (net 30). Late payments accrue "
             "interest at 1.5% per month on the overdue amount."),
            ("3. Limitation of Liability",
             "Each party's aggregate liability under this Agreement is capped "
             "at the total fees paid by the Client in the 12 months preceding "
             "the claim. Neither party is liable for indirect or "
             "consequential losses."),
            ("4. Term and Termination",
             "This Agreement runs for an initial term of 24 months. Either "
             "party may terminate for convenience on 60 days' written notice, "
             "or immediately for a material breach not cured within 30 days."),
            ("5. Confidentiality",
             "Each party will keep the other's confidential information "
             "secret during the term and for 3 years after termination."),
            ("6. Governing Law",
             "This Agreement is governed by the laws of England and Wales."),
        ],
    ),
    (
        "NDA_Contract.pdf",
        "Mutual Non-Disclosure Agreement",
        "This Mutual Non-Disclosure Agreement is made between Contoso Retail "
        "plc and Fabrikam Analytics Inc. (each a \"Party\"), effective "
        "15 January 2024, to evaluate a potential data partnership.",
        [
            ("1. Confidential Information",
             "Confidential Information means any non-public business, "
             "technical or financial information disclosed by one Party to "
             "the other, in any form, marked or reasonably understood as "
             "confidential."),
            ("2. Obligations",
             "The receiving Party will use Confidential Information solely to "
             "evaluate the proposed partnership and will restrict access to "
             "employees with a need to know."),
            ("3. Term and Termination",
             "This Agreement remains in force for 2 years. Either Party may "
             "terminate it on 30 days' written notice. Confidentiality "
             "obligations survive termination for 5 years."),
            ("4. Remedies",
             "Unauthorised disclosure may cause irreparable harm, and the "
             "disclosing Party may seek injunctive relief in addition to any "
             "other remedy. No fees are payable under this Agreement."),
            ("5. Governing Law",
             "This Agreement is governed by the laws of the State of New York."),
        ],
    ),
    (
        "SaaS_License_Agreement.pdf",
        "SaaS License Agreement",
        "This SaaS License Agreement is between Fabrikam Analytics Inc. (the "
        "\"Vendor\") and Contoso Retail plc (the \"Customer\"), effective "
        "1 April 2024.",
        [
            ("1. License Grant",
             "The Vendor grants the Customer a non-exclusive, "
             "non-transferable right to use the hosted analytics platform for "
             "up to 250 named users."),
            ("2. Fees and Payment Terms",
             "Subscription fees are invoiced annually in advance and are "
             "payable within 45 days of the invoice date. Fees increase by at "
             "most 5% at each renewal."),
            ("3. Service Levels",
             "The Vendor targets 99.9% monthly availability. Service credits "
             "of 5% of the monthly fee apply for each 0.1% below target."),
            ("4. Limitation of Liability",
             "The Vendor's total liability is capped at the subscription fees "
             "paid in the preceding 6 months, except for breaches of data "
             "protection obligations, which are capped at 2 times annual fees."),
            ("5. Term and Termination",
             "The subscription term is 12 months and renews automatically "
             "unless either party gives 90 days' written notice before "
             "renewal. Customer data is returned within 30 days of "
             "termination."),
            ("6. Confidentiality",
             "Each party protects the other's confidential information for "
             "the term and 3 years thereafter."),
        ],
    ),
]


def generate_contract(output_dir: Path, filename: str, title: str,
                      preamble: str, clauses: list[tuple[str, str]]) -> Path:
    pdf = ContractDocument(title)
    pdf.alias_nb_pages()
    pdf.set_auto_page_break(auto=True, margin=20)
    pdf.add_page()

    pdf.set_font("Helvetica", "B", 18)
    pdf.ln(6)
    pdf.cell(0, 12, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
    pdf.ln(4)

    pdf.set_font("Helvetica", "", 10)
    pdf.multi_cell(0, 5.5, preamble)

    for heading, text in clauses:
        pdf.clause(heading, text)

    output_path = output_dir / filename
    pdf.output(str(output_path))
    return output_path


def main():
    output_dir = Path(sys.argv[1] if len(sys.argv) > 1 else "data")
    output_dir.mkdir(parents=True, exist_ok=True)
    for filename, title, preamble, clauses in CONTRACTS:
        path = generate_contract(output_dir, filename, title, preamble, clauses)
        print(f"Generated: {path} ({path.stat().st_size:,} bytes)")


if __name__ == "__main__":
    main()
