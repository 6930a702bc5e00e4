"""
Script to generate sample inputs for manual runs against the API.

Creates a property-claim submission payload (with a drawn signature and a PDF
attachment) and, when the real court scans are not available, placeholder
Form 4 pages of the right size for the overlay.
"""

import base64
import io
import json
import os

from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from lawintake.documents.form_overlay import PAGE_COUNT, PAGE_FILENAME, PAGE_SIZE


def create_signature_png(size=(400, 150)):
    """A scribbled signature on a white background."""
    img = Image.new("RGB", size, color=(255, 255, 255))
    draw = ImageDraw.Draw(img)
    points = [(30, 100), (80, 40), (120, 110), (170, 50), (220, 105), (270, 45), (330, 95), (370, 70)]
    draw.line(points, fill=(20, 20, 80), width=4, joint="curve")
    buffer = io.BytesIO()
    img.save(buffer, "PNG")
    return buffer.getvalue()


def create_attachment_pdf(title):
    """Single-page PDF standing in for a scanned supporting document."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawCentredString(width / 2, height - 100, title)
    pdf.setFont("Helvetica", 11)
    pdf.drawCentredString(width / 2, height - 130, "Sample document for testing")
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def _b64(data):
    return base64.b64encode(data).decode("ascii")


def create_property_submission(path="property_submission.json"):
    """Payload accepted by POST /api/submission."""
    payload = {
        "basicInfo": {
            "fullName": "ישראל ישראלי",
            "idNumber": "000000018",
            "address": "רחוב הרצל 1, תל אביב",
            "phone": "0501234567",
            "email": "israel@example.com",
            "birthDate": "1985-03-15",
            "fullName2": "שרה ישראלי",
            "idNumber2": "123456782",
            "address2": "רחוב ויצמן 5, רמת גן",
            "phone2": "0527654321",
            "email2": "sara@example.com",
            "birthDate2": "1987-07-01",
            "relationshipType": "married",
            "weddingDay": "2010-06-20",
        },
        "selectedClaims": ["property"],
        "formData": {
            "children": [
                {
                    "firstName": "נועה",
                    "lastName": "ישראלי",
                    "idNumber": "000000026",
                    "birthDate": "2014-02-11",
                    "address": "רחוב הרצל 1, תל אביב",
                    "nameOfParent": "ישראל ישראלי",
                }
            ],
            "applicantEmploymentStatus": "employee",
            "applicantGrossSalary": 15000,
            "respondentEmploymentStatus": "employee",
            "respondentGrossSalary": 12000,
            "hasAssets": "yes",
            "apartments": [{"purchaseDate": "2012-01-01", "amount": 1, "owner": "ישראל ישראלי"}],
            "debts": [{"purpose": "משכנתא", "amount": 450000, "owner": "ישראל ישראלי"}],
            "courtProceedings": "no",
        },
        "signature": f"data:image/png;base64,{_b64(create_signature_png())}",
        "attachments": [
            {
                "name": "mortgage.pdf",
                "mimeType": "application/pdf",
                "label": "אישור יתרת משכנתא",
                "data": _b64(create_attachment_pdf("Mortgage balance")),
            }
        ],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    print(f"Created {path}")


def create_form4_placeholders(directory="assets/form4"):
    """Blank pages of the Form 4 scan size, numbered, for local overlay runs."""
    os.makedirs(directory, exist_ok=True)
    font = ImageFont.load_default()
    for number in range(1, PAGE_COUNT + 1):
        img = Image.new("RGB", PAGE_SIZE, color=(255, 255, 255))
        draw = ImageDraw.Draw(img)
        draw.rectangle([40, 40, PAGE_SIZE[0] - 40, PAGE_SIZE[1] - 40], outline=(180, 180, 180), width=3)
        draw.text((PAGE_SIZE[0] / 2, 80), f"Form 4 placeholder page {number}", fill=(120, 120, 120), font=font)
        filename = os.path.join(directory, PAGE_FILENAME.format(number=number))
        img.save(filename, "PNG")
        print(f"Created {filename}")


if __name__ == "__main__":
    create_property_submission()
    if not os.path.exists(os.path.join("assets", "form4", PAGE_FILENAME.format(number=1))):
        create_form4_placeholders()
