"""
Sample master catalog and business directory for local runs and tests.
"""

from datetime import datetime, timezone
from typing import List

from catalog_access.catalog import CatalogStore
from catalog_access.models import (
    Business,
    BusinessKind,
    DeliveryTerms,
    Location,
    MasterProduct,
    ProductKind,
    RegulatoryStatus,
)

_CREATED = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _medicine(product_id, name, name_ar, category, manufacturer, description, ingredient,
              dosage, form, rx, status, tags, keywords, created=_CREATED):
    return MasterProduct(
        id=product_id, name=name, name_ar=name_ar, category=category, kind=ProductKind.MEDICINE,
        manufacturer=manufacturer, description=description, active_ingredient=ingredient,
        dosage=dosage, form=form, prescription_required=rx,
        pharmacy_eligible=True, vendor_eligible=False, regulatory_status=status,
        tags=tuple(tags), keywords=tuple(keywords), created_at=created,
    )


def _supply(product_id, name, name_ar, category, kind, manufacturer, description, ingredient,
            form, tags, keywords, created=_CREATED):
    return MasterProduct(
        id=product_id, name=name, name_ar=name_ar, category=category, kind=kind,
        manufacturer=manufacturer, description=description, active_ingredient=ingredient,
        form=form, prescription_required=False,
        pharmacy_eligible=True, vendor_eligible=True,
        tags=tuple(tags), keywords=tuple(keywords), created_at=created,
    )


def sample_products() -> List[MasterProduct]:
    return [
        _medicine(1001, "Paracetamol 500mg", "باراسيتامول ٥٠٠ مجم", "analgesics", "PharmaCorp",
                  "Pain reliever and fever reducer", "Paracetamol", "500mg", "Tablet",
                  False, RegulatoryStatus.APPROVED,
                  ["pain-relief", "fever", "headache", "otc"],
                  ["paracetamol", "acetaminophen", "pain", "fever", "headache"]),
        _medicine(1002, "Amoxicillin 250mg", "أموكسيسيلين ٢٥٠ مجم", "antibiotics", "MediPharm",
                  "Antibiotic for bacterial infections", "Amoxicillin", "250mg", "Capsule",
                  True, RegulatoryStatus.CONTROLLED,
                  ["antibiotic", "prescription", "infection", "bacterial"],
                  ["amoxicillin", "antibiotic", "infection", "bacterial", "prescription"]),
        _medicine(1003, "Insulin Injection", "حقن الأنسولين", "diabetes", "DiabetesCare",
                  "Insulin for diabetes management", "Human Insulin", "100 IU/ml", "Injection",
                  True, RegulatoryStatus.CONTROLLED,
                  ["insulin", "diabetes", "prescription", "injection"],
                  ["insulin", "diabetes", "injection", "blood sugar", "prescription"]),
        _medicine(1004, "Ibuprofen 400mg", "إيبوبروفين ٤٠٠ مجم", "analgesics", "PainRelief Corp",
                  "Anti-inflammatory pain reliever", "Ibuprofen", "400mg", "Tablet",
                  False, RegulatoryStatus.APPROVED,
                  ["pain-relief", "anti-inflammatory", "fever", "otc"],
                  ["ibuprofen", "pain relief", "anti-inflammatory", "fever", "headache"]),
        _medicine(1005, "Vitamin D3 1000IU", "فيتامين د٣ ١٠٠٠ وحدة دولية", "vitamins", "VitaHealth",
                  "Essential vitamin D3 supplement for bone health", "Cholecalciferol",
                  "1000IU", "Capsule", False, RegulatoryStatus.APPROVED,
                  ["vitamin", "supplement", "bone-health", "immunity", "otc"],
                  ["vitamin d3", "cholecalciferol", "bone health", "immunity", "supplement"]),
        _supply(2001, "Hand Sanitizer 500ml", "معقم اليدين ٥٠٠ مل", "hygiene",
                ProductKind.HYGIENE_SUPPLY, "MedClean",
                "Alcohol-based hand sanitizer with 70% ethanol", "Ethanol 70%", "Gel",
                ["sanitizer", "hygiene", "alcohol", "disinfectant", "covid"],
                ["hand sanitizer", "alcohol", "disinfectant", "hygiene", "covid"]),
        _supply(2002, "Disposable Face Masks (50 pcs)", "كمامات طبية (٥٠ قطعة)", "medical-supplies",
                ProductKind.MEDICAL_SUPPLY, "SafeGuard",
                "3-layer disposable surgical face masks", "Non-woven fabric", "Mask",
                ["masks", "protection", "medical-supply", "covid", "surgical"],
                ["face masks", "surgical masks", "protection", "covid", "medical"]),
        _supply(2003, "Digital Thermometer", "ترمومتر رقمي", "medical-devices",
                ProductKind.MEDICAL_DEVICE, "TempCheck",
                "Digital infrared thermometer for body temperature", "Digital sensor", "Device",
                ["thermometer", "temperature", "medical-device", "digital", "infrared"],
                ["thermometer", "temperature", "fever", "digital", "infrared"]),
        _supply(2004, "Sterile Gauze Bandages (10 pcs)", "ضمادات شاش معقمة", "wound-care",
                ProductKind.MEDICAL_SUPPLY, "WoundCare Pro",
                "Sterile gauze bandages for wound dressing", "Cotton gauze", "Bandage",
                ["bandage", "wound-care", "sterile", "gauze", "medical-supply"],
                ["bandage", "gauze", "wound care", "sterile", "dressing"]),
        _supply(2005, "Blood Pressure Monitor", "جهاز قياس ضغط الدم", "medical-devices",
                ProductKind.MEDICAL_DEVICE, "HealthMonitor",
                "Automatic digital blood pressure monitor", "Digital measurement", "Device",
                ["blood-pressure", "monitor", "medical-device", "digital", "automatic"],
                ["blood pressure", "monitor", "hypertension", "digital", "automatic"]),
        _supply(2006, "Antiseptic Wipes (100 pcs)", "مناديل مطهرة", "hygiene",
                ProductKind.HYGIENE_SUPPLY, "CleanCare",
                "Alcohol-based antiseptic wipes for surface cleaning", "Isopropyl alcohol 70%",
                "Wipes", ["wipes", "antiseptic", "hygiene", "alcohol", "disinfectant"],
                ["antiseptic wipes", "disinfectant", "alcohol", "hygiene", "cleaning"]),
        _supply(2007, "Latex Gloves (100 pcs)", "قفازات لاتكس", "medical-supplies",
                ProductKind.MEDICAL_SUPPLY, "SafeHands",
                "Disposable latex examination gloves", "Natural latex", "Gloves",
                ["gloves", "latex", "medical-supply", "examination", "disposable"],
                ["latex gloves", "examination gloves", "medical gloves", "disposable"]),
        _supply(2008, "First Aid Kit", "حقيبة إسعافات أولية", "emergency-care",
                ProductKind.MEDICAL_SUPPLY, "EmergencyCare",
                "Complete first aid kit with essential medical supplies", "Mixed supplies", "Kit",
                ["first-aid", "emergency", "medical-supply", "kit", "safety"],
                ["first aid kit", "emergency", "medical supplies", "safety", "bandages"]),
        _supply(2009, "Pulse Oximeter", "جهاز قياس الأكسجين", "medical-devices",
                ProductKind.MEDICAL_DEVICE, "OxyCheck",
                "Fingertip pulse oximeter for oxygen saturation monitoring",
                "Digital sensor technology", "Device",
                ["pulse-oximeter", "oxygen-monitoring", "medical-device", "fingertip", "covid"],
                ["pulse oximeter", "oxygen saturation", "SpO2", "fingertip", "covid"]),
        _supply(2010, "Glucose Test Strips (50 pcs)", "شرائط اختبار الجلوكوز", "medical-devices",
                ProductKind.MEDICAL_DEVICE, "DiabetesCheck",
                "Accurate blood glucose test strips for diabetes monitoring",
                "Glucose oxidase enzyme", "Test strips",
                ["glucose", "diabetes", "test-strips", "medical-device", "monitoring"],
                ["glucose test strips", "diabetes", "blood sugar", "monitoring", "test"]),
    ]


def sample_businesses() -> List[Business]:
    return [
        Business(
            id="healthplus-ismailia", name="HealthPlus Pharmacy", kind=BusinessKind.PHARMACY,
            location=Location("ismailia-city", "ismailia"), rating=4.8, review_count=124,
            license_number="PH-ISM-001-2024",
            delivery=DeliveryTerms(delivery_fee=15, free_delivery_threshold=200,
                                   estimated_delivery_time="30-45 min"),
        ),
        Business(
            id="wellcare-ismailia", name="WellCare Pharmacy", kind=BusinessKind.PHARMACY,
            location=Location("ismailia-city", "ismailia"), rating=4.6, review_count=89,
            license_number="PH-ISM-002-2024",
            delivery=DeliveryTerms(delivery_fee=12, free_delivery_threshold=150,
                                   estimated_delivery_time="25-40 min"),
        ),
        Business(
            id="medtech-vendor", name="MedTech Supplies", kind=BusinessKind.VENDOR,
            location=Location("cairo-city", "cairo"), rating=4.7, review_count=156,
            license_number="VD-CAI-001-2024",
            delivery=DeliveryTerms(delivery_fee=25, free_delivery_threshold=500,
                                   estimated_delivery_time="1-2 hours"),
        ),
        Business(
            id="hygiene-plus-vendor", name="Hygiene Plus Supplies", kind=BusinessKind.VENDOR,
            location=Location("alexandria-city", "alexandria"), rating=4.5, review_count=203,
            license_number="VD-ALX-001-2024",
            delivery=DeliveryTerms(delivery_fee=20, free_delivery_threshold=300,
                                   estimated_delivery_time="45-90 min"),
        ),
    ]


def build_sample_catalog() -> CatalogStore:
    return CatalogStore(sample_products(), sample_businesses())
