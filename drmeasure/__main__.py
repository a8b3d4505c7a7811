from drmeasure.cli.main import main

main()
