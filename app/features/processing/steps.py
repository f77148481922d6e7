"""
Catalogue des étapes par défaut du pipeline.

Ordre : transcode -> thumbnail -> analysis -> hls -> dash.
Chaque handler appelle un backend puis écrit ses résultats sur la vidéo.
"""

from typing import List

from app.features.processing.backends import MetadataBackend, SensitivityBackend, TranscodingBackend
from app.features.processing.pipeline import StepContext, StepDefinition


class MediaSteps:
    def __init__(
        self,
        *,
        transcoder: TranscodingBackend,
        metadata: MetadataBackend,
        sensitivity: SensitivityBackend,
    ):
        self.transcoder = transcoder
        self.metadata = metadata
        self.sensitivity = sensitivity

    @staticmethod
    def _require_source(ctx: StepContext) -> str:
        source = ctx.source_path
        if not source:
            raise FileNotFoundError(f"Aucun fichier source pour la vidéo {ctx.video_id}")
        return source

    async def transcode(self, ctx: StepContext) -> None:
        original = ctx.video.original_path
        if not original:
            raise FileNotFoundError(f"Fichier original manquant pour la vidéo {ctx.video_id}")
        meta = await self.metadata.extract_metadata(original)
        processed = await self.transcoder.transcode(ctx.video_id, original)
        ctx.update_video(
            processed_path=processed,
            duration=meta.duration,
            resolution=meta.resolution,
            bitrate=meta.bitrate,
            codec=meta.codec,
        )
        ctx.results["metadata"] = meta

    async def thumbnail(self, ctx: StepContext) -> None:
        path = await self.transcoder.generate_thumbnail(ctx.video_id, self._require_source(ctx))
        ctx.update_video(thumbnail_path=path)

    async def analysis(self, ctx: StepContext) -> None:
        result = await self.sensitivity.analyze_sensitivity(self._require_source(ctx))
        ctx.update_video(
            sensitivity_status=result.status,
            sensitivity_score=result.confidence,
            sensitivity_reasons=list(result.reasons),
        )
        ctx.results["sensitivity"] = result

    async def hls(self, ctx: StepContext) -> None:
        path = await self.transcoder.generate_hls(ctx.video_id, self._require_source(ctx))
        ctx.update_video(hls_path=path)

    async def dash(self, ctx: StepContext) -> None:
        path = await self.transcoder.generate_dash(ctx.video_id, self._require_source(ctx))
        ctx.update_video(dash_path=path)

    def definitions(self) -> List[StepDefinition]:
        return [
            StepDefinition("transcode", "Transcodage", 4.0, self.transcode),
            StepDefinition("thumbnail", "Génération de la vignette", 2.0, self.thumbnail),
            StepDefinition("analysis", "Analyse de sensibilité", 2.5, self.analysis),
            StepDefinition("hls", "Création du flux HLS", 3.0, self.hls),
            StepDefinition("dash", "Création du manifeste DASH", 3.0, self.dash),
        ]


def build_default_steps(
    *,
    transcoder: TranscodingBackend,
    metadata: MetadataBackend,
    sensitivity: SensitivityBackend,
) -> List[StepDefinition]:
    return MediaSteps(transcoder=transcoder, metadata=metadata, sensitivity=sensitivity).definitions()
