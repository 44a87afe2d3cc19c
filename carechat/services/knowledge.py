"""Static reference tables used for teaching answers.

Both tables are read-only mappings built once at import time. Keys are
lowercase and matched by substring in either direction.
"""

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class SurgeryInfo:
    purpose: str
    procedure: str
    process: str
    risks: str
    precautions: str
    recovery: str
    learning: str


@dataclass(frozen=True)
class DiseaseInfo:
    summary: str
    notes: str


SURGERY_INFO = MappingProxyType({
    "coronary artery bypass": SurgeryInfo(
        purpose="Restore blood flow to ischemic myocardium by bypassing occluded coronary arteries.",
        procedure=(
            "Coronary Artery Bypass Grafting (CABG) involves creating new paths for blood flow "
            "using vessel grafts to bypass blocked coronary arteries."
        ),
        process=(
            "1. Sternotomy and harvesting of graft vessels (typically saphenous vein or internal mammary artery)\n"
            "2. Establishing cardiopulmonary bypass (if on-pump) or off-pump techniques\n"
            "3. Identification of target coronary vessels and distal anastomoses\n"
            "4. Construction of proximal and distal graft anastomoses\n"
            "5. Weaning from bypass and hemostasis\n"
            "6. Chest closure and postoperative transfer to ICU"
        ),
        risks="Bleeding, graft occlusion, myocardial infarction, stroke, infection, arrhythmias, renal dysfunction.",
        precautions=(
            "Optimize hemodynamics, manage anticoagulation carefully, monitor electrolytes and urine output, "
            "ensure aseptic technique, and perioperative glycemic control."
        ),
        recovery=(
            "ICU 24–72 hours, inpatient stay ~5–10 days depending on recovery; early mobilization, "
            "physiotherapy, cardiac rehab referral; full recovery weeks to months."
        ),
        learning=(
            "• Anatomy of coronary circulation\n"
            "• Graft selection and indications\n"
            "• CPB physiology and management\n"
            "• Post-op monitoring and complication recognition\n"
            "• Importance of secondary prevention (statins, antiplatelets)"
        ),
    ),
    "mastectomy": SurgeryInfo(
        purpose="Remove malignant breast tissue and regional nodes to achieve local control of breast cancer.",
        procedure=(
            "Surgical removal of breast tissue, which can be partial (lumpectomy) or complete (mastectomy), "
            "often combined with sentinel lymph node biopsy."
        ),
        process=(
            "1. Pre-op marking and imaging review\n"
            "2. Sentinel node identification and biopsy\n"
            "3. Oncological resection with adequate margins\n"
            "4. Hemostasis and specimen handling\n"
            "5. Consider immediate or delayed reconstruction\n"
            "6. Wound closure and drain placement"
        ),
        risks="Bleeding, seroma, infection, lymphedema, sensory changes, need for re-excision.",
        precautions=(
            "Pre-op imaging, anticoagulation review, counselling about reconstruction options, "
            "and perioperative antibiotics as indicated."
        ),
        recovery=(
            "Outpatient or short inpatient stay; drain management for 1–2 weeks; physiotherapy for "
            "shoulder mobility; follow-up for pathology and adjuvant planning."
        ),
        learning=(
            "• Breast anatomy and lymphatic drainage\n"
            "• Principles of oncologic margins\n"
            "• Sentinel node technique\n"
            "• Post-op care and psychosocial support"
        ),
    ),
    "appendectomy": SurgeryInfo(
        purpose="Remove inflamed or perforated appendix to prevent or treat peritonitis and sepsis.",
        procedure="Removal of the appendix, performed laparoscopically or via open appendectomy depending on presentation.",
        process=(
            "1. Port placement/incision\n"
            "2. Exploration and identification of appendix\n"
            "3. Mesenteric dissection and securing appendiceal base\n"
            "4. Division and removal of appendix\n"
            "5. Peritoneal toilet if perforated\n"
            "6. Closure and dressing"
        ),
        risks="Wound infection, intra-abdominal abscess, bowel injury, bleeding.",
        precautions=(
            "Appropriate imaging for diagnosis, perioperative antibiotics, careful tissue handling, "
            "and early recognition of perforation."
        ),
        recovery=(
            "Often discharge within 24–48 hours for uncomplicated laparoscopic cases; longer if perforated; "
            "wound care and activity restrictions for 1–2 weeks."
        ),
        learning=(
            "• Laparoscopic skills and port placement\n"
            "• Recognizing complicated appendicitis\n"
            "• Principles of peritoneal contamination management\n"
            "• Post-op analgesia and mobilization"
        ),
    ),
    "colectomy": SurgeryInfo(
        purpose="Resect diseased segments of colon for cancer, obstruction, or inflammatory disease.",
        procedure="Surgical removal of part or all of the colon with primary anastomosis or stoma creation as indicated.",
        process=(
            "1. Bowel preparation and positioning\n"
            "2. Vascular control and mobilization\n"
            "3. Resection of diseased segment\n"
            "4. Anastomosis or creation of stoma\n"
            "5. Check perfusion and hemostasis\n"
            "6. Closure and drain/stoma care as needed"
        ),
        risks="Anastomotic leak, bleeding, infection, ileus, stoma complications.",
        precautions=(
            "Patient optimization, prophylactic antibiotics, DVT prophylaxis, careful anastomotic technique, "
            "and perfusion assessment."
        ),
        recovery=(
            "Enhanced recovery protocols: early feeding, mobilization; hospital stay typically 3–7 days; "
            "stoma education if applicable."
        ),
        learning=(
            "• Colorectal anatomy and oncologic principles\n"
            "• Anastomosis technique and leak recognition\n"
            "• Stoma creation and care\n"
            "• ERAS principles"
        ),
    ),
    "thyroidectomy": SurgeryInfo(
        purpose=(
            "Remove part or all of the thyroid for benign or malignant disease while preserving "
            "laryngeal nerves and parathyroids."
        ),
        procedure="Excision of part or whole thyroid, often with lymph node assessment when indicated.",
        process=(
            "1. Neck positioning and incision\n"
            "2. Strap muscle retraction\n"
            "3. Identification and preservation of recurrent laryngeal nerves and parathyroids\n"
            "4. Vessel ligation and gland removal\n"
            "5. Hemostasis and closure"
        ),
        risks=(
            "Hypocalcemia from parathyroid injury, recurrent laryngeal nerve palsy, bleeding, "
            "hematoma, infection."
        ),
        precautions=(
            "Intraoperative nerve monitoring if available, careful identification of parathyroids, "
            "readiness to manage hematoma, and calcium monitoring post-op."
        ),
        recovery="Short inpatient stay; monitor calcium levels; voice and calcium-related symptoms follow-up; wound care.",
        learning=(
            "• Neck anatomy and nerve preservation\n"
            "• Post-op calcium management\n"
            "• Recognition of airway compromise\n"
            "• Importance of careful dissection"
        ),
    ),
})

DISEASE_INFO = MappingProxyType({
    # Cardiology
    "bypass surgery": DiseaseInfo(
        summary=(
            "Coronary artery bypass grafting (CABG), commonly called bypass surgery, is a procedure to "
            "restore blood flow to the heart by grafting vessels to bypass blocked coronary arteries."
        ),
        notes=(
            "Indications: significant coronary artery disease with ischemia. Key perioperative points: "
            "monitor hemodynamics, watch for arrhythmias, manage bleeding, early mobilization. Common "
            "complications: wound infection, graft occlusion, myocardial infarction, stroke."
        ),
    ),
    "coronary artery bypass grafting": DiseaseInfo(
        summary=(
            "Coronary artery bypass grafting (CABG) replaces or bypasses damaged coronary arteries using "
            "grafts from other vessels to improve myocardial perfusion."
        ),
        notes=(
            "Teaching: Understand indications vs PCI, recognize postop complications (tamponade, graft "
            "failure), and importance of secondary prevention (antiplatelets, statins, BP control)."
        ),
    ),
    "myocardial infarction": DiseaseInfo(
        summary=(
            "Myocardial infarction (heart attack) occurs when blood flow to part of the heart is blocked, "
            "causing ischemia and necrosis."
        ),
        notes=(
            "Recognize chest pain, ECG changes, elevated troponin. Acute management: MONA-B (Morphine, "
            "Oxygen if hypoxic, Nitroglycerin, Aspirin, Beta-blocker as indicated), reperfusion strategies "
            "(PCI/CABG), and long-term secondary prevention."
        ),
    ),
    "heart failure": DiseaseInfo(
        summary=(
            "Heart failure is a complex clinical syndrome where the heart cannot pump enough blood to meet "
            "the body's needs, characterized by reduced ejection fraction (HFrEF) or preserved ejection "
            "fraction (HFpEF)."
        ),
        notes=(
            "Key learning points: 1) Classify based on EF and NYHA. 2) Core medications: Beta-blockers, "
            "ACEi/ARB, MRA, SGLT2i for HFrEF. 3) Monitor volume status, renal function, and electrolytes. "
            "4) Recognize acute decompensation signs. 5) Lifestyle modifications crucial."
        ),
    ),
    "atrial fibrillation": DiseaseInfo(
        summary=(
            "Atrial fibrillation (AF) is the most common sustained cardiac arrhythmia, characterized by "
            "irregular atrial electrical activity leading to inefficient atrial contraction."
        ),
        notes=(
            "Management approach: 1) Rate vs rhythm control strategy. 2) Stroke prevention with "
            "anticoagulation based on CHA2DS2-VASc score. 3) Identify and treat underlying causes. "
            "4) Monitor for complications and medication side effects."
        ),
    ),
    "valvular heart disease": DiseaseInfo(
        summary=(
            "Disorders affecting heart valves (mitral, aortic, tricuspid, pulmonary) that can lead to "
            "stenosis or regurgitation, impacting cardiac function."
        ),
        notes=(
            "Clinical pearls: 1) Recognize characteristic murmurs. 2) Regular echocardiographic monitoring. "
            "3) Timing of intervention based on symptoms and cardiac function. 4) Anticoagulation in "
            "mechanical valves. 5) Endocarditis prophylaxis in select cases."
        ),
    ),
    "coronary artery disease": DiseaseInfo(
        summary=(
            "Progressive atherosclerotic disease of coronary arteries leading to reduced myocardial blood "
            "flow, causing angina, infarction, or heart failure."
        ),
        notes=(
            "Essential teaching: 1) Risk factor modification. 2) Medical therapy (antiplatelets, statins, "
            "beta-blockers). 3) Revascularization indications (PCI vs CABG). 4) Stress testing modalities. "
            "5) Acute coronary syndrome recognition and management."
        ),
    ),
    "cardiomyopathy": DiseaseInfo(
        summary=(
            "Disease of the heart muscle affecting its size, shape, or function. Types include dilated, "
            "hypertrophic, and restrictive cardiomyopathy."
        ),
        notes=(
            "Focus areas: 1) Genetic vs acquired causes. 2) Specific therapy based on type. 3) Risk "
            "stratification for sudden cardiac death. 4) Family screening in genetic cases. 5) Advanced "
            "heart failure management when indicated."
        ),
    ),
    "pericarditis": DiseaseInfo(
        summary=(
            "Inflammation of the pericardium (heart covering) causing chest pain and potential "
            "complications like tamponade."
        ),
        notes=(
            "Clinical approach: 1) Recognize ECG changes (diffuse ST elevation). 2) NSAIDs and colchicine "
            "as first-line therapy. 3) Monitor for complications. 4) Identify underlying causes. "
            "5) Recognize recurrence patterns."
        ),
    ),
    # General / surgical
    "appendicitis": DiseaseInfo(
        summary=(
            "Appendicitis is inflammation of the appendix often due to luminal obstruction, typically "
            "presenting with periumbilical pain migrating to the right lower quadrant."
        ),
        notes=(
            "Diagnosis: clinical exam, ultrasound/CT. Management: early appendectomy; antibiotics in "
            "selected cases. Complications: perforation, abscess."
        ),
    ),
    "pneumonia": DiseaseInfo(
        summary="Pneumonia is infection of the lung parenchyma causing cough, fever, and infiltrates on imaging.",
        notes=(
            "Assess severity (CURB-65), start appropriate empiric antibiotics, monitor oxygenation, and "
            "consider sputum cultures for targeted therapy."
        ),
    ),
    "diabetes": DiseaseInfo(
        summary=(
            "Diabetes mellitus is a metabolic disease characterized by hyperglycemia due to defects in "
            "insulin secretion, insulin action, or both."
        ),
        notes=(
            "Key teaching: differentiate type 1 vs type 2, monitor HbA1c, screen for complications "
            "(retinopathy, nephropathy, neuropathy), and manage with lifestyle, oral agents, and insulin "
            "as needed."
        ),
    ),
    "hypertension": DiseaseInfo(
        summary=(
            "Hypertension is persistently elevated arterial blood pressure and a major risk factor for "
            "cardiovascular disease."
        ),
        notes=(
            "Lifestyle modification first-line; pharmacotherapy based on comorbidities and BP targets. "
            "Monitor renal function and electrolytes with certain medications."
        ),
    ),
})


def _match_either_way(text: str, keys) -> str | None:
    text = (text or "").lower().strip()
    if not text:
        return None
    for key in keys:
        if key in text or text in key:
            return key
    return None


def find_surgery_info(text: str) -> tuple[str, SurgeryInfo] | None:
    key = _match_either_way(text, SURGERY_INFO)
    return (key, SURGERY_INFO[key]) if key else None


def find_disease_info(text: str) -> tuple[str, DiseaseInfo] | None:
    key = _match_either_way(text, DISEASE_INFO)
    return (key, DISEASE_INFO[key]) if key else None


def disease_mentioned_in(message: str) -> str | None:
    """Return the first disease key contained in the message (one direction only)."""
    lowered = message.lower()
    for key in DISEASE_INFO:
        if key in lowered:
            return key
    return None
