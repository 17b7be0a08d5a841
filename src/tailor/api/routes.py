from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from tailor.api.deps import get_session
from tailor.api.schemas import (
    BulletContentRequest,
    BulletCreateRequest,
    BulletFlagRequest,
    ConfirmRequest,
    ContactUpdateRequest,
    CoverLetterRequest,
    CoverLetterResponse,
    DataImportRequest,
    ExperienceRequest,
    GapFillRequest,
    GapFillResponse,
    ImportPdfRequest,
    ImportTextRequest,
    JobUpdateRequest,
    ProposalListResponse,
    ProposalResponse,
    RankedExperience,
    ScoreAllResponse,
    SessionStateResponse,
    SnapshotLoadResponse,
    SnapshotSummary,
)
from tailor.core.session import TailoringSession
from tailor.types import Bullet, Experience, GapAnalysisResult, JobDescription, Profile, ProfileTarget

router = APIRouter(prefix="/api", tags=["api"])


@router.get("/session", response_model=SessionStateResponse)
async def get_state(session: TailoringSession = Depends(get_session)) -> SessionStateResponse:
    return SessionStateResponse(
        mode="tracking_master" if session.profiles.is_tracking_master else "tailoring",
        job=session.job.job,
        tailored=session.profiles.tailored,
        proposals=session.proposals.proposals,
        gaps=session.gaps.result,
        cover_letter=session.letters.letter,
        notices=session.drain_notices(),
    )


@router.get("/profiles/{target}", response_model=Profile)
async def get_profile(target: ProfileTarget, session: TailoringSession = Depends(get_session)) -> Profile:
    return session.profiles.master if target == "master" else session.profiles.tailored


@router.put("/profiles/master", response_model=Profile)
async def replace_master(payload: Profile, session: TailoringSession = Depends(get_session)) -> Profile:
    return session.profiles.set_master(payload)


@router.get("/profiles/{target}/visible", response_model=Profile)
async def get_visible_profile(target: ProfileTarget, session: TailoringSession = Depends(get_session)) -> Profile:
    profile = session.profiles.master if target == "master" else session.profiles.tailored
    return profile.visible_view()


@router.patch("/profiles/{target}", response_model=Profile)
async def update_contact(
    target: ProfileTarget,
    payload: ContactUpdateRequest,
    session: TailoringSession = Depends(get_session),
) -> Profile:
    return session.profiles.update_contact(target=target, **payload.model_dump(exclude_none=True))


@router.post("/profiles/{target}/experiences", response_model=Experience)
async def add_experience(
    target: ProfileTarget,
    payload: ExperienceRequest,
    session: TailoringSession = Depends(get_session),
) -> Experience:
    return session.profiles.add_experience(target=target, **payload.model_dump(exclude_none=True))


@router.patch("/profiles/{target}/experiences/{experience_id}", response_model=Experience)
async def update_experience(
    target: ProfileTarget,
    experience_id: str,
    payload: ExperienceRequest,
    session: TailoringSession = Depends(get_session),
) -> Experience:
    return session.profiles.update_experience(
        experience_id, target=target, **payload.model_dump(exclude_none=True)
    )


@router.delete("/profiles/{target}/experiences/{experience_id}")
async def delete_experience(
    target: ProfileTarget,
    experience_id: str,
    session: TailoringSession = Depends(get_session),
) -> dict:
    session.profiles.delete_experience(experience_id, target=target)
    return {"deleted": experience_id}


@router.post("/profiles/{target}/experiences/{experience_id}/bullets", response_model=Bullet)
async def add_bullet(
    target: ProfileTarget,
    experience_id: str,
    payload: BulletCreateRequest,
    session: TailoringSession = Depends(get_session),
) -> Bullet:
    return session.profiles.add_bullet(experience_id, payload.content, target=target)


@router.put("/profiles/{target}/bullets/{bullet_id}", response_model=Bullet)
async def edit_bullet(
    target: ProfileTarget,
    bullet_id: str,
    payload: BulletContentRequest,
    session: TailoringSession = Depends(get_session),
) -> Bullet:
    if target == "tailored":
        return session.proposals.edit(bullet_id, payload.content)
    return session.profiles.set_bullet_content(bullet_id, payload.content, target=target)


@router.delete("/profiles/{target}/bullets/{bullet_id}")
async def delete_bullet(
    target: ProfileTarget,
    bullet_id: str,
    session: TailoringSession = Depends(get_session),
) -> dict:
    session.profiles.delete_bullet(bullet_id, target=target)
    return {"deleted": bullet_id}


@router.put("/profiles/{target}/bullets/{bullet_id}/visibility", response_model=Bullet)
async def set_visibility(
    target: ProfileTarget,
    bullet_id: str,
    payload: BulletFlagRequest,
    session: TailoringSession = Depends(get_session),
) -> Bullet:
    return session.profiles.set_bullet_visibility(bullet_id, payload.value, target=target)


@router.post("/profiles/{target}/bullets/{bullet_id}/visibility/toggle", response_model=Bullet)
async def toggle_visibility(
    target: ProfileTarget,
    bullet_id: str,
    session: TailoringSession = Depends(get_session),
) -> Bullet:
    return session.profiles.toggle_bullet_visibility(bullet_id, target=target)


@router.put("/profiles/{target}/bullets/{bullet_id}/lock", response_model=Bullet)
async def set_lock(
    target: ProfileTarget,
    bullet_id: str,
    payload: BulletFlagRequest,
    session: TailoringSession = Depends(get_session),
) -> Bullet:
    return session.profiles.set_bullet_locked(bullet_id, payload.value, target=target)


@router.post("/profiles/master/import", response_model=Profile)
async def import_resume_text(
    payload: ImportTextRequest,
    session: TailoringSession = Depends(get_session),
) -> Profile:
    imported = await session.importer.import_text(payload.raw_text)
    return imported or session.profiles.master


@router.post("/profiles/master/import/pdf", response_model=Profile)
async def import_resume_pdf(
    payload: ImportPdfRequest,
    session: TailoringSession = Depends(get_session),
) -> Profile:
    imported = await session.importer.import_pdf(payload.decoded())
    return imported or session.profiles.master


@router.post("/tailored/reset", response_model=Profile)
async def reset_tailored(payload: ConfirmRequest, session: TailoringSession = Depends(get_session)) -> Profile:
    return session.reset_tailored_from_master(confirmed=payload.confirmed)


@router.get("/job", response_model=JobDescription)
async def get_job(session: TailoringSession = Depends(get_session)) -> JobDescription:
    return session.job.job


@router.patch("/job", response_model=JobDescription)
async def update_job(payload: JobUpdateRequest, session: TailoringSession = Depends(get_session)) -> JobDescription:
    return session.job.update(company=payload.company, title=payload.title, text=payload.text)


@router.delete("/job", response_model=JobDescription)
async def clear_job(session: TailoringSession = Depends(get_session)) -> JobDescription:
    return session.new_job()


@router.post("/job/keywords", response_model=list[str])
async def analyze_keywords(session: TailoringSession = Depends(get_session)) -> list[str]:
    return await session.job.analyze_keywords()


@router.get("/proposals", response_model=ProposalListResponse)
async def list_proposals(session: TailoringSession = Depends(get_session)) -> ProposalListResponse:
    return ProposalListResponse(
        proposals=session.proposals.proposals,
        optimizing=sorted(session.proposals.optimizing),
    )


@router.post("/bullets/{bullet_id}/optimize", response_model=ProposalResponse)
async def optimize_bullet(bullet_id: str, session: TailoringSession = Depends(get_session)) -> ProposalResponse:
    proposal = await session.proposals.optimize(bullet_id)
    bullet = session.profiles.get_bullet(bullet_id)
    return ProposalResponse(
        bullet_id=bullet_id,
        state=session.proposals.state(bullet_id),
        content=bullet.content,
        proposal=proposal,
    )


@router.post("/bullets/optimize", response_model=ProposalListResponse)
async def optimize_all(session: TailoringSession = Depends(get_session)) -> ProposalListResponse:
    await session.proposals.optimize_all()
    return ProposalListResponse(
        proposals=session.proposals.proposals,
        optimizing=sorted(session.proposals.optimizing),
    )


@router.post("/bullets/{bullet_id}/accept", response_model=Bullet)
async def accept_proposal(bullet_id: str, session: TailoringSession = Depends(get_session)) -> Bullet:
    return await session.proposals.accept(bullet_id)


@router.post("/bullets/{bullet_id}/discard", response_model=ProposalResponse)
async def discard_proposal(bullet_id: str, session: TailoringSession = Depends(get_session)) -> ProposalResponse:
    session.proposals.discard(bullet_id)
    bullet = session.profiles.get_bullet(bullet_id)
    return ProposalResponse(bullet_id=bullet_id, state=session.proposals.state(bullet_id), content=bullet.content)


@router.post("/scores", response_model=ScoreAllResponse)
async def score_all(session: TailoringSession = Depends(get_session)) -> ScoreAllResponse:
    scored = await session.scorer.score_all()
    return ScoreAllResponse(scored=scored, profile=session.profiles.tailored)


@router.get("/scores/ranked", response_model=list[RankedExperience])
async def ranked(session: TailoringSession = Depends(get_session)) -> list[RankedExperience]:
    return [
        RankedExperience(
            experience_id=experience.id,
            company=experience.company,
            role=experience.role,
            visible=sum(1 for bullet in bullets if bullet.is_visible),
            bullets=bullets,
        )
        for experience, bullets in session.scorer.ranked_view()
    ]


@router.post("/gaps", response_model=GapAnalysisResult)
async def analyze_gaps(session: TailoringSession = Depends(get_session)) -> GapAnalysisResult:
    return await session.gaps.analyze()


@router.post("/gaps/fill", response_model=GapFillResponse)
async def fill_gap(payload: GapFillRequest, session: TailoringSession = Depends(get_session)) -> GapFillResponse:
    bullet = await session.gaps.fill_gap(payload.skill, payload.experience_id, payload.user_context)
    return GapFillResponse(bullet=bullet, gaps=session.gaps.result)


@router.post("/cover-letter", response_model=CoverLetterResponse)
async def generate_cover_letter(session: TailoringSession = Depends(get_session)) -> CoverLetterResponse:
    return CoverLetterResponse(letter=await session.letters.generate())


@router.put("/cover-letter", response_model=CoverLetterResponse)
async def set_cover_letter(payload: CoverLetterRequest, session: TailoringSession = Depends(get_session)) -> CoverLetterResponse:
    return CoverLetterResponse(letter=session.letters.set_letter(payload.text))


@router.get("/snapshots", response_model=list[SnapshotSummary])
async def list_snapshots(session: TailoringSession = Depends(get_session)) -> list[SnapshotSummary]:
    return [SnapshotSummary.from_snapshot(snapshot) for snapshot in session.snapshots.list()]


@router.post("/snapshots", response_model=list[SnapshotSummary])
async def save_snapshot(session: TailoringSession = Depends(get_session)) -> list[SnapshotSummary]:
    return [SnapshotSummary.from_snapshot(snapshot) for snapshot in session.save_snapshot()]


@router.post("/snapshots/{snapshot_id}/load", response_model=SnapshotLoadResponse)
async def load_snapshot(
    snapshot_id: str,
    payload: ConfirmRequest,
    session: TailoringSession = Depends(get_session),
) -> SnapshotLoadResponse:
    snapshot = session.load_snapshot(snapshot_id, confirmed=payload.confirmed)
    return SnapshotLoadResponse(
        snapshot_id=snapshot.id,
        profile=session.profiles.tailored,
        job=session.job.job,
        cover_letter=session.letters.letter,
    )


@router.delete("/snapshots/{snapshot_id}", response_model=list[SnapshotSummary])
async def delete_snapshot(snapshot_id: str, session: TailoringSession = Depends(get_session)) -> list[SnapshotSummary]:
    return [SnapshotSummary.from_snapshot(snapshot) for snapshot in session.snapshots.delete(snapshot_id)]


@router.get("/data/export")
async def export_data(session: TailoringSession = Depends(get_session)) -> dict:
    return {"data": session.export_data()}


@router.post("/data/import")
async def import_data(payload: DataImportRequest, session: TailoringSession = Depends(get_session)) -> dict:
    return {"ok": session.import_data(payload.data)}


@router.websocket("/events")
async def stream_events(websocket: WebSocket) -> None:
    await websocket.accept()
    session: TailoringSession = websocket.app.state.session
    try:
        async for event in session.events.subscribe():
            await websocket.send_json(event)
    except WebSocketDisconnect:
        return
