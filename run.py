import sys

if __name__ == "__main__":
    from mips_analyzer.main import main
    sys.exit(main())
