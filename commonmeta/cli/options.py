"""Global command line options shared by all commands via ``typer.Context.obj``."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict

from commonmeta.formats.base import QueryOptions
from commonmeta.formats.crossrefxml import Account

DEFAULT_TYPE = "journal-article"


@dataclass
class GlobalOptions:
    from_format: str = ""
    to_format: str = "commonmeta"
    number: int = 10
    page: int = 1
    member: str = ""
    client: str = ""
    type: str = DEFAULT_TYPE
    year: str = ""
    country: str = ""
    language: str = ""
    orcid: str = ""
    affiliation: str = ""
    ror: str = ""
    community: str = ""
    subject: str = ""
    from_host: str = ""
    from_token: str = ""
    host: str = ""
    token: str = ""
    depositor: str = ""
    email: str = ""
    registrant: str = ""
    legacy_key: str = ""
    password: str = ""
    login_id: str = ""
    login_passwd: str = ""
    has_orcid: bool = False
    has_ror_id: bool = False
    has_references: bool = False
    has_relation: bool = False
    has_abstract: bool = False
    has_award: bool = False
    has_license: bool = False
    has_archive: bool = False
    is_archived: bool = False
    sample: bool = False
    match: bool = False
    file: str = ""
    vocabulary: bool = False
    compress: bool = False
    development: bool = False
    data_version: str = ""

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "GlobalOptions":
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in params.items() if k in names})

    def query_options(self, from_format: str) -> QueryOptions:
        """List query options for a source format.

        The default work type is a Crossref type and only applies to Crossref.
        """
        work_type = self.type
        if work_type == DEFAULT_TYPE and from_format not in ("crossref", "crossrefxml"):
            work_type = ""
        return QueryOptions(
            number=self.number,
            page=self.page,
            member=self.member,
            client=self.client,
            type=work_type,
            sample=self.sample,
            year=self.year,
            language=self.language,
            orcid=self.orcid,
            ror=self.ror,
            affiliation=self.affiliation,
            community=self.community,
            subject=self.subject,
            host=self.from_host,
            has_orcid=self.has_orcid,
            has_ror_id=self.has_ror_id,
            has_references=self.has_references,
            has_relation=self.has_relation,
            has_abstract=self.has_abstract,
            has_award=self.has_award,
            has_license=self.has_license,
            has_archive=self.has_archive,
            is_archived=self.is_archived,
            match=self.match,
        )

    def account(self) -> Account:
        return Account(
            login_id=self.login_id,
            login_passwd=self.login_passwd,
            depositor=self.depositor,
            email=self.email,
            registrant=self.registrant,
        )
