"""
Reply templates keyed by template id.

Bundled texts are the defaults. With templates_from_drafts enabled the store
first looks for a Gmail draft labelled with the template id, so recruiters can
edit wording in the mailbox without a deploy.
"""
import logging
from typing import Optional

from ..config import Settings
from ..exceptions import TemplateNotFoundError

logger = logging.getLogger(__name__)

CANDIDATE_NAME = "[Candidate Name]"
JOB_TITLE = "[Job Title]"
COMPANY_NAME = "[Company Name]"

DEFAULT_CANDIDATE_NAME = "Candidate"
DEFAULT_JOB_TITLE = "applied"

REJECTION_MISSING_MULTIPLE = "templates-rejection-missing_multiple_details"
REJECTION_NO_RESUME = "templates-rejection-no_resume"
REJECTION_NO_COVER_LETTER = "templates-rejection-no_cover_letter"
REJECTION_NO_CLEAR_POSITION = "templates-rejection-no_clear_job_position"
KEY_DETAILS_DEVELOPER_EXPERIENCED = "templates-request_key_details-developer-experienced"
KEY_DETAILS_DEVELOPER_FRESHER = "templates-request_key_details-developer-fresher"
KEY_DETAILS_NON_TECH = "templates-request_key_details-non-tech"
KEY_DETAILS_CREATIVE = "templates-request_key_details-creative"

_SIGNATURE = """
Best regards,
The Recruitment Team
[Company Name]
"""

_COMPANY_BLURB = """At [Company Name], we pride ourselves on being a value and technology-driven firm. With over 10 years of successful operations in the IT field, we have established ourselves as a fully integrated Web Consulting Solution Company.

To learn more about us and stay connected, we invite you to visit our website at oCode Tech and like our page on Facebook.
"""

BUNDLED_TEMPLATES = {
    REJECTION_MISSING_MULTIPLE: """
Dear [Candidate Name],

Thank you for your interest in joining [Company Name].

Unfortunately, your application appears to be missing several important details, such as your resume/CV, cover letter, or a clear mention of the position you're applying for. As a result, we're unable to proceed with the review of your application at this time.

If you would like to provide the missing information, please reply to this email with the relevant details, and we will be happy to reconsider your application.

Thank you again for reaching out, and we wish you the best in your job search.
""" + _SIGNATURE,
    REJECTION_NO_RESUME: """
Dear [Candidate Name],

Thank you for applying for the [Job Title] position at [Company Name].

We noticed that your application did not include a resume attachment. To move forward with the review process, we kindly ask that you reply to this email with your updated resume at your earliest convenience.

If you've already sent it separately, please let us know.

We look forward to reviewing your application.
""" + _SIGNATURE,
    REJECTION_NO_COVER_LETTER: """
Dear [Candidate Name],

Thank you for applying for the [Job Title] position at [Company Name].

We noticed that your application did not include a cover letter in the email body. To proceed with your application, please reply to this email and include your cover letter directly in the message.

We look forward to reviewing your complete application.
""" + _SIGNATURE,
    REJECTION_NO_CLEAR_POSITION: """
Dear [Candidate Name],

Thank you for your interest in joining [Company Name].

We noticed that your application did not specify the job position you are applying for. To help us process your application correctly, please reply to this email and clearly mention the job position either in the subject line or in the body of your message.

We look forward to your response.
""" + _SIGNATURE,
    KEY_DETAILS_DEVELOPER_EXPERIENCED: """
Dear [Candidate Name],

Warm greetings from [Company Name]!

Thank you for considering [Company Name] for your career. We appreciate your job application and would like to request the following information, along with an updated resume in Word document format, to proceed with the evaluation of your candidature:

(Please write NA for Not Applicable)

Position applied for: [Job Title]
Current CTC (Must be verifiable):
Expected CTC:
Last appraisal (When & by how much):
The reason for switching from the current job:
Total relevant work experience:
Probable Date & Time for Personal Interview:
Current Location:
GitHub Repository:
StackOverflow Profile:
Verified Contact Number:
Whether ready to sign an initial 1-year agreement (Y/Need to discuss):

""" + _COMPANY_BLURB + """
Please feel free to ask if you have any queries or require further information. We eagerly await your response and hope to hear from you soon.
""" + _SIGNATURE,
    KEY_DETAILS_DEVELOPER_FRESHER: """
Dear [Candidate Name],

Warm greetings from [Company Name]!

Thank you for considering [Company Name] to start your career. We appreciate your job application and would like to request the following information, along with an updated resume in Word document format, to proceed with the evaluation of your candidature:

(Please write NA for Not Applicable)

Position applied for: [Job Title]
Highest Education Qualification (with year of passing):
Internships / Training completed:
Projects (links if available):
GitHub Repository:
Expected Stipend / CTC:
Probable Date & Time for Personal Interview:
Current Location:
Verified Contact Number:
Whether ready to sign an initial 1.6-year agreement for freshers (Y/Need to discuss):

""" + _COMPANY_BLURB + """
Please feel free to ask if you have any queries or require further information. We eagerly await your response and hope to hear from you soon.
""" + _SIGNATURE,
    KEY_DETAILS_NON_TECH: """
Dear [Candidate Name],

Warm greetings from [Company Name]!

Thank you for considering [Company Name] as your potential employer. We appreciate your job application and would like to request the following information along with an updated resume in Word document format to proceed with the evaluation of your candidature:

Position applied for: [Job Title]
Current CTC:
Expected CTC:
Total work experience:
Probable Date & Time for Personal Interview:
Current Location:
Highest Education Qualification:
Verified Contact Number:
LinkedIn Profile URL:
Best Time to Call:
Latest Resume: We require an updated resume.

Additionally, please confirm your readiness to sign an initial agreement of 1 year (please note that this is non-negotiable).

""" + _COMPANY_BLURB + """
If you have any queries or require further information, please feel free to ask. We eagerly await your response and hope to hear from you soon.
""" + _SIGNATURE,
    KEY_DETAILS_CREATIVE: """
Dear [Candidate Name],

Warm greetings from [Company Name]!

Thank you for your interest in the [Job Title] position. We appreciate your job application and would like to request the following information, along with an updated resume in Word document format, to proceed with the evaluation of your candidature:

(Please write NA for Not Applicable)

Position applied for: [Job Title]
Portfolio URL (Behance / Dribbble / personal site):
Design tools you work with:
Current CTC:
Expected CTC:
Total relevant work experience:
Probable Date & Time for Personal Interview:
Current Location:
Verified Contact Number:
Whether ready to sign an initial 1-year agreement (Y/Need to discuss):

""" + _COMPANY_BLURB + """
Please feel free to ask if you have any queries or require further information. We eagerly await your response and hope to hear from you soon.
""" + _SIGNATURE,
}


def render_template(
    template: str,
    candidate_name: Optional[str],
    job_title: Optional[str],
    company_name: str,
) -> str:
    """Literal placeholder replacement. Blank or 'unclear' values use the fallbacks."""
    name = (candidate_name or "").strip() or DEFAULT_CANDIDATE_NAME
    title = (job_title or "").strip()
    if not title or title.lower() == "unclear":
        title = DEFAULT_JOB_TITLE
    return (
        template.replace(CANDIDATE_NAME, name)
        .replace(JOB_TITLE, title)
        .replace(COMPANY_NAME, company_name)
        .strip()
    )


class TemplateStore:
    """Template lookup by id: Gmail draft (optional) first, then the bundled text."""

    def __init__(self, settings: Settings, gmail=None):
        self.settings = settings
        self.gmail = gmail
        self._cache: dict[str, str] = {}

    def get(self, template_id: str) -> str:
        if template_id in self._cache:
            return self._cache[template_id]

        text = ""
        if self.settings.templates_from_drafts and self.gmail is not None:
            text = self.gmail.get_draft_text(f"is:draft label:{template_id}")
            if text:
                logger.info(f"Using Gmail draft for template {template_id}")
        if not text:
            text = BUNDLED_TEMPLATES.get(template_id, "")
        if not text:
            raise TemplateNotFoundError(f"Template not found: {template_id}")

        self._cache[template_id] = text
        return text

    def render(self, template_id: str, candidate_name: Optional[str], job_title: Optional[str]) -> str:
        return render_template(self.get(template_id), candidate_name, job_title, self.settings.company_name)
