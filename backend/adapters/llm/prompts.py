"""
Prompt templates.

Every text-generation prompt and the live interviewer's system instruction
are built here so that services never format model-facing text inline.
"""

from __future__ import annotations

from typing import Any

PROMPT_VERSION = "v1"

APP_NAME_AR = "وجهني"

STATUS_LABELS_AR = {
    "student": "طالب جامعي",
    "graduate": "خريج",
}

NO_ASSESSMENT_AR = "لم يتم إجراء اختبار."

FALLBACK_ASSESSMENT_QUESTIONS: tuple[str, ...] = (
    "أفضل العمل الفردي والتركيز العميق على العمل الجماعي.",
    "تستهويني الجوانب النظرية والبحثية أكثر من التطبيق العملي.",
    "أحب التعامل مع البيانات والأرقام المعقدة.",
    "أفضل الوظائف التي تتطلب إبداعاً بصرياً.",
    "لدي شغف بحل المشكلات التقنية المعقدة.",
    "أفضل بيئة العمل المكتبية المستقرة.",
    "أهتم بمتابعة أحدث التقنيات في مجالي بشكل يومي.",
    "أفضل الأدوار القيادية وإدارة الفرق.",
    "أحب التواصل المباشر مع العملاء والجمهور.",
    "أفضل العمل في مشاريع قصيرة الأمد وسريعة الإنجاز.",
)

EVALUATION_ERROR_FEEDBACK_AR = "حدث خطأ في التقييم"


# =============================================================================
# Live interviewer
# =============================================================================

def build_interview_instruction(target_role: str, candidate_context: str = "") -> str:
    """System instruction for the spoken interviewer persona."""
    lines = [
        "You are a professional HR Manager conducting a job interview in Arabic.",
        f'The job role is: "{target_role}".',
    ]
    if candidate_context:
        lines.append(f"Candidate background: {candidate_context}")
    lines += [
        "",
        "Start the conversation by introducing yourself briefly and asking the first question.",
        "Keep your questions concise.",
        "Wait for the candidate to answer before asking the next question.",
    ]
    return "\n".join(lines)


# =============================================================================
# Text generation
# =============================================================================

def assessment_questions_prompt(major: str) -> str:
    return f"""
Generate 10 short, specific psychometric or technical interest questions for a student/graduate in the field of "{major}".
The questions MUST be in ARABIC language.
The goal is to understand their specific niche interests.

The questions should be statements where the user will rate "Agree" or "Disagree".
Example: "أستمتع بحل الخوارزميات الرياضية أكثر من التصميم البصري."

Return ONLY a JSON object of the form {{"questions": ["...", "..."]}}.
"""


def _experience_label(status: str) -> str:
    return "المستوى الدراسي (السنة)" if status == "student" else "سنوات الخبرة"


def analysis_prompt(profile: Any) -> str:
    if profile.assessment_answers:
        quiz_context = "\n".join(
            f'- العبارة: "{a.question}" | تقييم المستخدم (10/1): {a.score}'
            for a in profile.assessment_answers
        )
    else:
        quiz_context = NO_ASSESSMENT_AR

    return f"""
تحليل ملف مستخدم لتطبيق توجيه مهني.
المعلومات الأساسية:
- نبذة شخصية: {profile.description}
- التخصص: {profile.major}
- الحالة: {STATUS_LABELS_AR.get(profile.status, profile.status)}
- {_experience_label(profile.status)}: {profile.years_of_experience}

نتائج اختبار الميول (التقييم من 1 "لا أتفق" إلى 10 "أتفق بشدة"):
{quiz_context}

المطلوب:
1. تحليل دقيق جداً للميول بناءً على إجابات الاختبار والتخصص.
2. اقتراح أفضل 3 أدوار وظيفية دقيقة (Job Titles) تناسب هذا المزيج.

الرد JSON فقط:
{{
  "summary": "تحليل عميق يربط بين إجابات الاختبار والتخصص في فقرة واحدة",
  "strengths": ["نقطة قوة مستنتجة 1", "نقطة قوة 2"],
  "recommendedRoles": ["المسمى الوظيفي 1", "المسمى الوظيفي 2", "المسمى الوظيفي 3"]
}}
"""


def roadmap_prompt(profile: Any, target_role: str) -> str:
    if profile.status == "student":
        level = f"المستوى الدراسي: السنة {profile.years_of_experience}"
    else:
        level = f"خبرة {profile.years_of_experience} سنوات"

    return f"""
أنت خبير توجيه مهني. قم بإنشاء خارطة طريق مكثفة لمدة 6 أشهر لتجهيز المستخدم لوظيفة: "{target_role}".

المستخدم: {profile.major}, {level}.

المطلوب: 5 مراحل (Steps) متسلسلة ومنطقية.
لكل مرحلة، يجب اقتراح شهادات احترافية (Professional Certifications) معروفة.

Output JSON format:
{{
  "steps": [
    {{
      "title": "اسم المرحلة",
      "description": "شرح تفصيلي",
      "certifications": ["اسم الشهادة 1", "اسم الشهادة 2"],
      "platform": "Coursera",
      "duration": "شهر واحد"
    }}
  ]
}}
"""


def evaluation_prompt(transcript: str, role: str) -> str:
    return f"""
قم بتقييم مقابلة وظيفية (محاكاة) للدور الوظيفي: "{role}".

سجل الحوار (Transcript):
{transcript}

المطلوب: تقييم شامل لأداء المرشح من حيث الثقة، المعلومات التقنية، وطريقة الرد.

JSON Output Format:
{{
  "score": number (0-100),
  "feedback": "نص تقييمي شامل ومفصل",
  "improvements": ["نقطة للتحسين 1", "نقطة للتحسين 2"],
  "strengths": ["نقطة قوة 1", "نقطة قوة 2"]
}}
"""


def advisor_instruction(profile: Any) -> str:
    return f"""
أنت مستشار مهني في تطبيق "{APP_NAME_AR}".
المستخدم: {profile.major} ({profile.status}).
الأسلوب: احترافي، دقيق، وداعم.
"""


def cv_prompt(profile: Any, analysis: Any, cv_data: Any) -> str:
    language = "Arabic" if cv_data.language == "ar" else "English"
    strengths = ", ".join(analysis.strengths) if analysis and analysis.strengths else ""
    target_role = (
        analysis.recommended_roles[0]
        if analysis and analysis.recommended_roles
        else "Professional"
    )

    return f"""
Create a professional, ATS-optimized CV/Resume in {language} language.
Use clean Markdown formatting that is ATS-friendly.

=== USER DATA ===
Full Name: {cv_data.full_name}
Email: {cv_data.email or 'Not provided'}
Phone: {cv_data.phone or 'Not provided'}
LinkedIn: {cv_data.linkedin or 'Not provided'}

Professional Summary: {cv_data.summary or 'Fresh graduate seeking opportunities'}

Education: {cv_data.education or profile.major}

Work Experience: {cv_data.experience or 'No formal experience yet'}

Technical Skills: {cv_data.skills or strengths or 'Various skills'}

Projects: {cv_data.projects or 'No projects listed'}

=== AI ANALYSIS ===
Target Role: {target_role}
Strengths: {strengths or 'Not analyzed'}

Create sections: Contact, Summary, Education, Experience, Skills, Projects.
Use action verbs and ATS-friendly keywords.
"""
