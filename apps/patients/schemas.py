# apps/patients/schemas.py
from drf_spectacular.utils import OpenApiExample

CreateHistoryExample = OpenApiExample(
    "New history entry",
    value={
        "patient": 12,
        "condition": "Hypertension",
        "diagnosis": "Stage 1 essential hypertension",
        "treatment": "Losartan 50 mg daily, low-sodium diet",
        "notes": "Re-check blood pressure in 4 weeks.",
        "diagnosis_date": "2025-03-02",
    },
    description="The calling doctor is recorded as the author.",
)

UpdateHistoryExample = OpenApiExample(
    "Update treatment",
    value={"treatment": "Losartan 100 mg daily", "notes": None},
    description="`null` clears an optional free-text field.",
)
