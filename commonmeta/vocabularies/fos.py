"""OECD Fields of Science and Technology (FOS 2007).

Each field has a dotted code ("1.2"), a camelCase key used by the Rogue
Scholar blog categories ("computerAndInformationSciences"), an English label
used as the Commonmeta subject, and the OECD URI used as subject id in
InvenioRDM.
"""

from typing import NamedTuple, Optional

FOS_URI_PREFIX = "http://www.oecd.org/science/inno/38235147.pdf?"


class Field(NamedTuple):
    code: str
    key: str
    label: str

    @property
    def uri(self) -> str:
        return FOS_URI_PREFIX + self.code

    @property
    def subject(self) -> str:
        """Subject string with the scheme prefix, as in DataCite and InvenioRDM."""
        return "FOS: " + self.label


FIELDS = (
    Field("1", "naturalSciences", "Natural sciences"),
    Field("1.1", "mathematics", "Mathematics"),
    Field("1.2", "computerAndInformationSciences", "Computer and information sciences"),
    Field("1.3", "physicalSciences", "Physical sciences"),
    Field("1.4", "chemicalSciences", "Chemical sciences"),
    Field("1.5", "earthAndRelatedEnvironmentalSciences", "Earth and related environmental sciences"),
    Field("1.6", "biologicalSciences", "Biological sciences"),
    Field("1.7", "otherNaturalSciences", "Other natural sciences"),
    Field("2", "engineeringAndTechnology", "Engineering and technology"),
    Field("2.1", "civilEngineering", "Civil engineering"),
    Field(
        "2.2",
        "electricalEngineering",
        "Electrical engineering, electronic engineering, information engineering",
    ),
    Field("2.3", "mechanicalEngineering", "Mechanical engineering"),
    Field("2.4", "chemicalEngineering", "Chemical engineering"),
    Field("2.5", "materialsEngineering", "Materials engineering"),
    Field("2.6", "medicalEngineering", "Medical engineering"),
    Field("2.7", "environmentalEngineering", "Environmental engineering"),
    Field("2.8", "environmentalBiotechnology", "Environmental biotechnology"),
    Field("2.9", "industrialBiotechnology", "Industrial biotechnology"),
    Field("2.10", "nanoTechnology", "Nano technology"),
    Field("2.11", "otherEngineeringAndTechnologies", "Other engineering and technologies"),
    Field("3", "medicalAndHealthSciences", "Medical and health sciences"),
    Field("3.1", "basicMedicine", "Basic medicine"),
    Field("3.2", "clinicalMedicine", "Clinical medicine"),
    Field("3.3", "healthSciences", "Health sciences"),
    Field("3.4", "healthBiotechnology", "Health biotechnology"),
    Field("3.5", "otherMedicalSciences", "Other medical sciences"),
    Field("4", "agriculturalSciences", "Agricultural sciences"),
    Field("4.1", "agricultureForestryAndFisheries", "Agriculture, forestry, and fisheries"),
    Field("4.2", "animalAndDairyScience", "Animal and dairy science"),
    Field("4.3", "veterinaryScience", "Veterinary science"),
    Field("4.4", "agriculturalBiotechnology", "Agricultural biotechnology"),
    Field("4.5", "otherAgriculturalSciences", "Other agricultural sciences"),
    Field("5", "socialScience", "Social science"),
    Field("5.1", "psychology", "Psychology"),
    Field("5.2", "economicsAndBusiness", "Economics and business"),
    Field("5.3", "educationalSciences", "Educational sciences"),
    Field("5.4", "sociology", "Sociology"),
    Field("5.5", "law", "Law"),
    Field("5.6", "politicalScience", "Political science"),
    Field("5.7", "socialAndEconomicGeography", "Social and economic geography"),
    Field("5.8", "mediaAndCommunications", "Media and communications"),
    Field("5.9", "otherSocialSciences", "Other social sciences"),
    Field("6", "humanities", "Humanities"),
    Field("6.1", "historyAndArchaeology", "History and archaeology"),
    Field("6.2", "languagesAndLiterature", "Languages and literature"),
    Field("6.3", "philosophyEthicsAndReligion", "Philosophy, ethics and religion"),
    Field(
        "6.4",
        "artsArtsHistoryOfArtsPerformingArtsMusic",
        "Arts (arts, history of arts, performing arts, music)",
    ),
    Field("6.5", "otherHumanities", "Other humanities"),
)

_BY_KEY = {f.key: f for f in FIELDS}
_BY_LABEL = {f.label.lower(): f for f in FIELDS}
_BY_URI = {f.uri: f for f in FIELDS}


def find_field(value: Optional[str]) -> Optional[Field]:
    """Find a field by key, label (with or without "FOS: " prefix) or URI."""
    if not value:
        return None
    if value in _BY_KEY:
        return _BY_KEY[value]
    if value in _BY_URI:
        return _BY_URI[value]
    label = value.strip()
    if label.startswith("FOS: "):
        label = label[5:]
    return _BY_LABEL.get(label.lower())


def key_to_label(key: Optional[str]) -> str:
    field = _BY_KEY.get(key or "")
    return field.label if field else ""


def label_to_key(label: Optional[str]) -> str:
    field = find_field(label)
    return field.key if field else ""


def label_to_uri(label: Optional[str]) -> str:
    field = find_field(label)
    return field.uri if field else ""


def is_fos(subject: Optional[str]) -> bool:
    return find_field(subject) is not None
