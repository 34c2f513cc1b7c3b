"""Controlled vocabularies of the Commonmeta model.

Enumerations are str-valued so that members compare equal to the plain
strings found in JSON documents:

    WorkType.JOURNAL_ARTICLE == "JournalArticle"  # True
"""

from enum import Enum
from typing import Dict, Optional


class WorkType(str, Enum):
    """Types of works (the `type` of a record)."""

    ARTICLE = "Article"
    AUDIOVISUAL = "Audiovisual"
    BLOG_POST = "BlogPost"
    BOOK = "Book"
    BOOK_CHAPTER = "BookChapter"
    BOOK_PART = "BookPart"
    BOOK_SECTION = "BookSection"
    BOOK_SERIES = "BookSeries"
    BOOK_SET = "BookSet"
    BOOK_TRACK = "BookTrack"
    COLLECTION = "Collection"
    COMPONENT = "Component"
    DATABASE = "Database"
    DATASET = "Dataset"
    DISSERTATION = "Dissertation"
    DOCUMENT = "Document"
    ENTRY = "Entry"
    EVENT = "Event"
    FIGURE = "Figure"
    GRANT = "Grant"
    IMAGE = "Image"
    INSTRUMENT = "Instrument"
    INTERACTIVE_RESOURCE = "InteractiveResource"
    JOURNAL = "Journal"
    JOURNAL_ARTICLE = "JournalArticle"
    JOURNAL_ISSUE = "JournalIssue"
    JOURNAL_VOLUME = "JournalVolume"
    LEGAL_DOCUMENT = "LegalDocument"
    MANUSCRIPT = "Manuscript"
    MAP = "Map"
    PATENT = "Patent"
    PEER_REVIEW = "PeerReview"
    PERFORMANCE = "Performance"
    PERSONAL_COMMUNICATION = "PersonalCommunication"
    PHYSICAL_OBJECT = "PhysicalObject"
    POST = "Post"
    POSTER = "Poster"
    PRESENTATION = "Presentation"
    PROCEEDINGS = "Proceedings"
    PROCEEDINGS_ARTICLE = "ProceedingsArticle"
    PROCEEDINGS_SERIES = "ProceedingsSeries"
    REPORT = "Report"
    REPORT_COMPONENT = "ReportComponent"
    REPORT_SERIES = "ReportSeries"
    REVIEW = "Review"
    SOFTWARE = "Software"
    SOUND = "Sound"
    STANDARD = "Standard"
    STANDARD_SERIES = "StandardSeries"
    STUDY_REGISTRATION = "StudyRegistration"
    WEB_PAGE = "WebPage"
    WORKFLOW = "Workflow"
    OTHER = "Other"


class ContributorType(str, Enum):
    PERSON = "Person"
    ORGANIZATION = "Organization"


class ContributorRole(str, Enum):
    """Contributor roles, including the CRediT taxonomy terms."""

    AUTHOR = "Author"
    EDITOR = "Editor"
    CHAIR = "Chair"
    REVIEWER = "Reviewer"
    REVIEW_ASSISTANT = "ReviewAssistant"
    STATS_REVIEWER = "StatsReviewer"
    REVIEWER_EXTERNAL = "ReviewerExternal"
    READER = "Reader"
    TRANSLATOR = "Translator"
    CONTACT_PERSON = "ContactPerson"
    DATA_COLLECTOR = "DataCollector"
    DATA_MANAGER = "DataManager"
    DISTRIBUTOR = "Distributor"
    HOSTING_INSTITUTION = "HostingInstitution"
    PRODUCER = "Producer"
    PROJECT_LEADER = "ProjectLeader"
    PROJECT_MANAGER = "ProjectManager"
    PROJECT_MEMBER = "ProjectMember"
    REGISTRATION_AGENCY = "RegistrationAgency"
    REGISTRATION_AUTHORITY = "RegistrationAuthority"
    RELATED_PERSON = "RelatedPerson"
    RESEARCH_GROUP = "ResearchGroup"
    RIGHTS_HOLDER = "RightsHolder"
    RESEARCHER = "Researcher"
    SPONSOR = "Sponsor"
    WORK_PACKAGE_LEADER = "WorkPackageLeader"
    CONCEPTUALIZATION = "Conceptualization"
    DATA_CURATION = "DataCuration"
    FORMAL_ANALYSIS = "FormalAnalysis"
    FUNDING_ACQUISITION = "FundingAcquisition"
    INVESTIGATION = "Investigation"
    METHODOLOGY = "Methodology"
    PROJECT_ADMINISTRATION = "ProjectAdministration"
    RESOURCES = "Resources"
    SOFTWARE = "Software"
    SUPERVISION = "Supervision"
    VALIDATION = "Validation"
    VISUALIZATION = "Visualization"
    WRITING_ORIGINAL_DRAFT = "WritingOriginalDraft"
    WRITING_REVIEW_EDITING = "WritingReviewEditing"
    MAINTAINER = "Maintainer"
    OTHER = "Other"


class RelationType(str, Enum):
    """Relation types carried in `relations`. Citations go to `references`."""

    IS_PART_OF = "IsPartOf"
    HAS_PART = "HasPart"
    IS_IDENTICAL_TO = "IsIdenticalTo"
    IS_PREPRINT_OF = "IsPreprintOf"
    HAS_PREPRINT = "HasPreprint"
    IS_SUPPLEMENT_TO = "IsSupplementTo"
    IS_SUPPLEMENTED_BY = "IsSupplementedBy"
    IS_REVIEWED_BY = "IsReviewedBy"
    REVIEWS = "Reviews"
    HAS_REVIEW = "HasReview"
    IS_TRANSLATION_OF = "IsTranslationOf"
    IS_VERSION_OF = "IsVersionOf"
    HAS_VERSION = "HasVersion"
    IS_NEW_VERSION_OF = "IsNewVersionOf"
    IS_PREVIOUS_VERSION_OF = "IsPreviousVersionOf"
    IS_VARIANT_FORM_OF = "IsVariantFormOf"
    IS_ORIGINAL_FORM_OF = "IsOriginalFormOf"


class IdentifierType(str, Enum):
    ARK = "ARK"
    ARXIV = "arXiv"
    BIBCODE = "Bibcode"
    CROSSREF_FUNDER_ID = "Crossref Funder ID"
    DOI = "DOI"
    GUID = "GUID"
    HANDLE = "Handle"
    ISBN = "ISBN"
    ISSN = "ISSN"
    OPENALEX = "OpenAlex"
    PMID = "PMID"
    PMCID = "PMCID"
    PURL = "PURL"
    RID = "RID"
    URL = "URL"
    URN = "URN"
    UUID = "UUID"
    OTHER = "Other"


class DescriptionType(str, Enum):
    ABSTRACT = "Abstract"
    SUMMARY = "Summary"
    METHODS = "Methods"
    TECHNICAL_INFO = "TechnicalInfo"
    OTHER = "Other"


class TitleType(str, Enum):
    ALTERNATIVE_TITLE = "AlternativeTitle"
    SUBTITLE = "Subtitle"
    TRANSLATED_TITLE = "TranslatedTitle"


class DateType(str, Enum):
    CREATED = "created"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    PUBLISHED = "published"
    UPDATED = "updated"
    ACCESSED = "accessed"
    AVAILABLE = "available"
    COPYRIGHTED = "copyrighted"
    COLLECTED = "collected"
    VALID = "valid"
    WITHDRAWN = "withdrawn"
    OTHER = "other"


WORK_TYPES = frozenset(t.value for t in WorkType)
CONTRIBUTOR_ROLES = frozenset(r.value for r in ContributorRole)
RELATION_TYPES = frozenset(r.value for r in RelationType)
IDENTIFIER_TYPES = frozenset(t.value for t in IdentifierType)

# type of a work -> type of its container
CONTAINER_TYPES: Dict[str, str] = {
    "BookChapter": "Book",
    "Dataset": "Database",
    "JournalArticle": "Journal",
    "JournalIssue": "Journal",
    "Book": "BookSeries",
    "ProceedingsArticle": "Proceedings",
    "Article": "Periodical",
    "BlogPost": "Blog",
}


def work_type(value: Optional[str]) -> str:
    """Return value when it is a known work type, else "Other"."""
    if value and value in WORK_TYPES:
        return value
    return WorkType.OTHER.value


def contributor_role(value: Optional[str]) -> str:
    """Map a role to a Commonmeta role; unknown roles become "Other"."""
    if not value:
        return ContributorRole.AUTHOR.value
    if value in CONTRIBUTOR_ROLES:
        return value
    return ContributorRole.OTHER.value
