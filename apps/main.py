#apps\main.py
"""
アプリケーションのエントリポイント。
このファイルは"薄く"保つ。設定読み込み・ストア初期化・UI起動は core 側で行う。
"""
from document_reader_core.core import main


if __name__ == "__main__":
    main()
