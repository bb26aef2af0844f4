from typing import Iterable, List, Optional

from tqdm import tqdm

from bookreader.core.exceptions import BookReaderError
from bookreader.core.logger import get_logger
from bookreader.ingest import EpubAdapter, FB2Extractor, Normalizer, RenderingEngine, TextSegmenter, detect_format
from bookreader.library import Library
from bookreader.schemas import Book, ExtractedBook, FileType, IngestFailure, IngestResult, IngestSuccess, SourceFile

logger = get_logger(__name__)


class Ingestor:
    """
    导入入口：识别格式、调用对应提取器并归一化为 Book。
    """

    def __init__(self, locale: Optional[str] = None, engine: Optional[RenderingEngine] = None):
        """
        初始化导入器。

        Args:
            locale: 回退文案使用的语言，默认取配置中的 LOCALE。
            engine: EPUB 渲染引擎，默认使用 ebooklib。
        """
        self.normalizer = Normalizer(locale=locale)
        self.extractors = {
            FileType.FB2: FB2Extractor(locale=locale),
            FileType.TXT: TextSegmenter(locale=locale),
            FileType.EPUB: EpubAdapter(engine=engine),
        }

    def parse(self, source: SourceFile) -> Book:
        """
        同步解析单个文件，失败时抛出 BookReaderError 的子类。
        """
        file_type = detect_format(source)
        extracted: ExtractedBook = self.extractors[file_type].extract(source)
        return self.normalizer.normalize(extracted, file_type, source)

    async def ingest(self, source: SourceFile) -> IngestResult:
        """
        导入单个文件。整个解析过程中不会让出控制权，开始后无法取消。

        Returns:
            成功时为 IngestSuccess，失败时为带有文件名和原因的 IngestFailure。
        """
        try:
            book = self.parse(source)
        except BookReaderError as e:
            logger.error(f"导入文件 {source.name} 失败: {e}")
            return IngestFailure(filename=source.name, error=type(e).__name__, message=str(e))
        except Exception as e:
            logger.exception(f"导入文件 {source.name} 时发生意外错误")
            return IngestFailure(filename=source.name, error=type(e).__name__, message=str(e))

        logger.info(f"导入成功: {book.title} - {book.author}（{len(book.chapters)} 章）")
        return IngestSuccess(filename=source.name, book=book)

    def _store(self, result: IngestSuccess, source: SourceFile, library: Library) -> IngestResult:
        book = result.book
        if book.file_type is FileType.EPUB:
            try:
                library.store_payload(book.id, source.data)
            except BookReaderError as e:
                logger.error(f"保存 {source.name} 的二进制数据失败: {e}")
                return IngestFailure(filename=source.name, error=type(e).__name__, message=str(e))
        library.add(book)
        return result

    def _commit(self, results: List[IngestResult], library: Library) -> List[IngestResult]:
        """
        保存书库。保存失败时撤销本批加入的书及其二进制数据，成功结果全部改为失败。
        """
        try:
            library.save()
            return results
        except BookReaderError as e:
            error, reason = type(e).__name__, str(e)
            logger.error(f"保存书库失败，撤销本批导入: {e}")

        added = {r.book.id: r.book for r in results if isinstance(r, IngestSuccess)}
        library.books = [book for book in library.books if book.id not in added]
        for book in added.values():
            if book.file_type is not FileType.EPUB:
                continue
            try:
                library.delete_payload(book.id)
            except OSError as e:
                logger.error(f"清理《{book.title}》的二进制数据失败: {e}")

        return [
            IngestFailure(filename=r.filename, error=error, message=reason) if isinstance(r, IngestSuccess) else r
            for r in results
        ]

    async def ingest_batch(
        self, sources: Iterable[SourceFile], library: Optional[Library] = None, skip_duplicates: bool = False
    ) -> List[IngestResult]:
        """
        依次导入多个文件；单个文件失败不影响其余文件。

        Args:
            sources: 待导入的文件。
            library: 如果提供，成功的书会被加入书库（EPUB 同时保存二进制数据），
                最后统一保存。
            skip_duplicates: 为 True 时跳过书库中已存在的同名同作者书籍。

        Returns:
            与输入顺序一致的结果列表。
        """
        sources = list(sources)
        results: List[IngestResult] = []
        # 使用 tqdm 显示导入进度（按文件）
        for source in tqdm(sources, desc="导入书籍", unit="文件", disable=len(sources) < 2):
            result = await self.ingest(source)
            if library is not None and isinstance(result, IngestSuccess):
                if skip_duplicates and library.find_duplicate(result.book.title, result.book.author):
                    logger.warning(f"书库中已存在《{result.book.title}》，跳过 {source.name}")
                    message = f"'{result.book.title}' is already in the library"
                    result = IngestFailure(filename=source.name, error="Duplicate", message=message)
                else:
                    result = self._store(result, source, library)
            results.append(result)

        if library is not None:
            results = self._commit(results, library)

        failed = [r for r in results if not r.ok]
        if failed:
            logger.warning(f"批量导入完成：成功 {len(results) - len(failed)} 个，失败 {len(failed)} 个")
        return results
