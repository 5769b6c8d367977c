from gridcalc.cli import main

main()
