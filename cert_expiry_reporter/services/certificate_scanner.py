"""
证书目录扫描服务
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Union

from ..interfaces import CertificateExtractorInterface, LoggerServiceInterface
from ..models import CertificateRecord, ExtractionFailure, ScanResult
from .certificate_extractor import CertificateExtractor
from .error_handler import ExtractionErrorHandler, InputDirectoryNotFoundError

DEFAULT_CONCURRENCY = 10
DEFAULT_FILE_EXTENSION = ".cer"


class CertificateScanner:
    """证书目录扫描器，顺序或并发地解析目录中的证书文件"""

    def __init__(self, extractor: Optional[CertificateExtractorInterface] = None,
                 logger_service: Optional[LoggerServiceInterface] = None,
                 file_extension: str = DEFAULT_FILE_EXTENSION):
        """
        初始化扫描器

        Args:
            extractor: 证书解析器
            logger_service: 日志服务，用于记录每条记录和每个失败
            file_extension: 证书文件扩展名（不区分大小写）
        """
        self.extractor = extractor or CertificateExtractor()
        self.logger_service = logger_service
        self.file_extension = file_extension.lower()
        self.error_handler = ExtractionErrorHandler()
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()

    def list_certificate_files(self, directory: str) -> List[Path]:
        """
        列出目录下匹配扩展名的证书文件（不递归，按文件名排序）

        Args:
            directory: 证书目录

        Returns:
            List[Path]: 证书文件列表

        Raises:
            InputDirectoryNotFoundError: 目录不存在
        """
        base = Path(directory)
        if not base.is_dir():
            raise InputDirectoryNotFoundError(str(directory))

        return sorted(
            (path for path in base.iterdir()
             if path.is_file() and path.suffix.lower() == self.file_extension),
            key=lambda path: path.name
        )

    def scan(self, directory: str, concurrency: int = DEFAULT_CONCURRENCY,
             parallel: bool = True) -> ScanResult:
        """
        扫描目录并解析所有证书文件

        Args:
            directory: 证书目录
            concurrency: 最大并发数
            parallel: 是否启用并发处理

        Returns:
            ScanResult: 扫描结果（记录无顺序保证）

        Raises:
            InputDirectoryNotFoundError: 目录不存在
        """
        files = self.list_certificate_files(directory)
        return self.scan_files(files, concurrency=concurrency, parallel=parallel)

    def scan_files(self, files: List[Path], concurrency: int = DEFAULT_CONCURRENCY,
                   parallel: bool = True) -> ScanResult:
        """
        解析给定的证书文件列表

        Args:
            files: 证书文件列表
            concurrency: 最大并发数
            parallel: 是否启用并发处理

        Returns:
            ScanResult: 扫描结果
        """
        result = ScanResult(total_files=len(files))
        if not files:
            return result

        if parallel and concurrency > 1 and len(files) > 1:
            self.logger.debug(f"并发解析 {len(files)} 个证书文件，并发数: {concurrency}")
            self._scan_parallel(files, concurrency, result)
        else:
            self.logger.debug(f"顺序解析 {len(files)} 个证书文件")
            self._scan_sequential(files, result)

        return result

    def _scan_sequential(self, files: List[Path], result: ScanResult):
        for path in files:
            try:
                outcome = self._extract(path)
            except Exception as e:
                outcome = self.error_handler.handle_extraction_error(str(path), e)
            self._collect(result, outcome)

    def _scan_parallel(self, files: List[Path], concurrency: int, result: ScanResult):
        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            future_to_path = {
                executor.submit(self._extract, path): path
                for path in files
            }

            for future in as_completed(future_to_path):
                path = future_to_path[future]
                try:
                    outcome = future.result()
                except Exception as e:
                    outcome = self.error_handler.handle_extraction_error(str(path), e)
                self._collect(result, outcome)

    def _extract(self, path: Path) -> Union[CertificateRecord, ExtractionFailure]:
        return self.extractor.extract(str(path))

    def _collect(self, result: ScanResult, outcome: Union[CertificateRecord, ExtractionFailure]):
        with self._lock:
            if isinstance(outcome, ExtractionFailure):
                result.failures.append(outcome)
            else:
                result.records.append(outcome)

        if self.logger_service is None:
            if isinstance(outcome, ExtractionFailure):
                self.logger.error(f"证书解析失败 - 文件: {outcome.path}, "
                                  f"错误: {outcome.error_type}: {outcome.error_message}")
            return

        if isinstance(outcome, ExtractionFailure):
            self.logger_service.log_extraction_failure(outcome)
        else:
            self.logger_service.log_certificate_record(outcome)
