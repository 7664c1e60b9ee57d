import pytest

from app.container import build_services
from app.settings import Settings
from domain.caller import Caller
from domain.schemas import CreateApplicantRequest, CreateJobPostRequest, ScoringVerdict
from helpers import CV_TEXT, FakeScorer
from infra.db.session import init_db, make_engine, make_session_factory
from infra.storage.document_store import DocumentStore


@pytest.fixture
def verdict() -> ScoringVerdict:
    return ScoringVerdict(
        overall_score=78,
        summary="Strong backend fit",
        strengths=["5y Go", "Distributed systems"],
        weaknesses=["No Kubernetes"],
        detailed_analysis="Solid Go background with production distributed systems work.",
    )


@pytest.fixture
def scorer(verdict) -> FakeScorer:
    return FakeScorer(verdict=verdict)


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def store(tmp_path) -> DocumentStore:
    return DocumentStore(str(tmp_path / "cvs"))


@pytest.fixture
def settings() -> Settings:
    return Settings(MAX_PAGE_SIZE=100, MIN_PAGE_SIZE=1, DEFAULT_PAGE_SIZE=10, SCREENING_MAX_CONCURRENCY=4)


@pytest.fixture
def services(settings, session_factory, store, scorer):
    return build_services(settings, session_factory, store=store, scorer=scorer)


@pytest.fixture
def owner() -> Caller:
    return Caller(user_id="recruiter-1")


@pytest.fixture
def stranger() -> Caller:
    return Caller(user_id="recruiter-2")


@pytest.fixture
def admin() -> Caller:
    return Caller(user_id="root", is_admin=True)


@pytest.fixture
def job(services, owner):
    return services.job_posts.create(CreateJobPostRequest(
        title="Backend Engineer",
        description="Build and run Go services for the payments platform.",
        required_skills="Go, Distributed systems, Kubernetes",
        preferred_skills="Postgres",
        experience_level="Senior",
    ), owner)


@pytest.fixture
def new_applicant(services, job, owner):
    def _create(first_name="Ada", last_name="Lovelace", email="ada@example.com", job_post_id=None, **extra):
        req = CreateApplicantRequest(first_name=first_name, last_name=last_name, email=email, **extra)
        return services.applicants.create(job_post_id or job.id, req, owner)
    return _create


@pytest.fixture
def applicant(new_applicant):
    return new_applicant()


@pytest.fixture
def upload(services, owner):
    def _upload(applicant_id, data: bytes = CV_TEXT.encode("utf-8"), file_name="resume.txt",
                content_type="text/plain"):
        return services.cv_files.upload(applicant_id, file_name, content_type, data, owner)
    return _upload
