from sdr_monitor.main import main

main()
